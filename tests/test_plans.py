import pytest

from kinetoflow.core.errors import BadRequestError, ForbiddenError, NotFoundError
from kinetoflow.models import UserRole
from kinetoflow.schemas.catalog import ServiceItemIn
from kinetoflow.schemas.plans import PlanAssignRequest
from kinetoflow.services import catalog, plans


def test_assign_plan_from_package_copies_items(db, clinic, make_service, make_package):
    massage = make_service(clinic.company, "Massage", price="25.00")
    package = make_package(clinic.company, [(clinic.service, 10), (massage, 4)])

    plan = plans.assign_plan(
        db,
        actor=clinic.medic,
        patient_id=clinic.patient.id,
        payload=PlanAssignRequest(package_id=package.id),
    )

    assert plan.originating_package_id == package.id
    assert plan.assigned_by_id == clinic.medic.id
    assert plan.is_active and not plan.is_archived
    lines = {item.service_id: item for item in plan.items}
    assert lines[clinic.service.id].total_quantity == 10
    assert lines[clinic.service.id].remaining_quantity == 10
    assert lines[massage.id].price_per_unit == massage.price


def test_package_edits_do_not_touch_assigned_plans(db, clinic, make_package):
    package = make_package(clinic.company, [(clinic.service, 10)])
    plan = plans.assign_plan(
        db,
        actor=clinic.admin,
        patient_id=clinic.patient.id,
        payload=PlanAssignRequest(package_id=package.id),
    )

    package.items[0].quantity = 3
    db.flush()
    db.expire_all()

    assert plan.items[0].total_quantity == 10


def test_assign_plan_from_explicit_items(db, clinic):
    plan = plans.assign_plan(
        db,
        actor=clinic.admin,
        patient_id=clinic.patient.id,
        payload=PlanAssignRequest(
            service_items=[ServiceItemIn(service_id=clinic.service.id, quantity=6)],
            notes="post-op",
        ),
    )

    assert plan.originating_package_id is None
    assert plan.notes == "post-op"
    assert [(i.total_quantity, i.remaining_quantity) for i in plan.items] == [(6, 6)]


def test_assign_plan_requires_exactly_one_source(db, clinic, make_package):
    package = make_package(clinic.company, [(clinic.service, 10)])
    items = [ServiceItemIn(service_id=clinic.service.id, quantity=1)]

    for payload in (
        PlanAssignRequest(),
        PlanAssignRequest(package_id=package.id, service_items=items),
    ):
        with pytest.raises(BadRequestError):
            plans.assign_plan(
                db, actor=clinic.admin, patient_id=clinic.patient.id, payload=payload
            )


def test_assign_plan_rejects_inactive_package(db, clinic, make_package):
    package = make_package(clinic.company, [(clinic.service, 10)], active=False)

    with pytest.raises(BadRequestError):
        plans.assign_plan(
            db,
            actor=clinic.admin,
            patient_id=clinic.patient.id,
            payload=PlanAssignRequest(package_id=package.id),
        )


def test_unassigned_medic_cannot_assign_plan(db, clinic, make_user):
    other_medic = make_user(UserRole.MEDIC, clinic.company)

    with pytest.raises(ForbiddenError):
        plans.assign_plan(
            db,
            actor=other_medic,
            patient_id=clinic.patient.id,
            payload=PlanAssignRequest(
                service_items=[ServiceItemIn(service_id=clinic.service.id, quantity=1)]
            ),
        )


def test_assign_plan_to_inactive_patient_fails(db, clinic, make_user):
    dormant = make_user(UserRole.PATIENT, clinic.company, active=False, assigned_medic=clinic.medic)

    with pytest.raises(BadRequestError):
        plans.assign_plan(
            db,
            actor=clinic.medic,
            patient_id=dormant.id,
            payload=PlanAssignRequest(
                service_items=[ServiceItemIn(service_id=clinic.service.id, quantity=1)]
            ),
        )


def test_plan_of_other_tenant_patient_is_not_found(db, clinic, make_company, make_user):
    other_admin = make_user(UserRole.TENANT_ADMIN, make_company("Other Clinic"))

    with pytest.raises(NotFoundError):
        plans.get_plans_for_patient(db, actor=other_admin, patient_id=clinic.patient.id)


def test_archived_plans_are_hidden_and_frozen(db, clinic, make_plan):
    plan = make_plan(clinic.patient, [(clinic.service, 5)], assigned_by=clinic.medic)

    plans.archive_plan(db, actor=clinic.medic, plan_id=plan.id)
    again = plans.archive_plan(db, actor=clinic.medic, plan_id=plan.id)

    assert again.is_archived and not again.is_active
    assert all(item.is_archived and not item.is_item_active for item in again.items)
    assert plans.get_plans_for_patient(db, actor=clinic.medic, patient_id=clinic.patient.id) == []
    with pytest.raises(BadRequestError):
        plans.set_plan_active(db, actor=clinic.medic, plan_id=plan.id, active=True)


def test_reactivating_plan_follows_service_state(db, clinic, make_service, make_plan):
    massage = make_service(clinic.company, "Massage")
    plan = make_plan(clinic.patient, [(clinic.service, 5), (massage, 5)])

    plans.set_plan_active(db, actor=clinic.admin, plan_id=plan.id, active=False)
    assert not any(item.is_item_active for item in plan.items)

    catalog.set_service_active(db, actor=clinic.admin, service_id=massage.id, active=False)
    plans.set_plan_active(db, actor=clinic.admin, plan_id=plan.id, active=True)

    states = {item.service_id: item.is_item_active for item in plan.items}
    assert states == {clinic.service.id: True, massage.id: False}


def test_patient_sees_only_own_plans(db, clinic, make_user, make_plan):
    other_patient = make_user(UserRole.PATIENT, clinic.company)
    own = make_plan(clinic.patient, [(clinic.service, 5)])
    foreign = make_plan(other_patient, [(clinic.service, 5)])

    assert [p.id for p in plans.list_own_plans(db, actor=clinic.patient)] == [own.id]
    assert plans.get_own_plan(db, actor=clinic.patient, plan_id=own.id).id == own.id
    with pytest.raises(NotFoundError):
        plans.get_own_plan(db, actor=clinic.patient, plan_id=foreign.id)


def test_item_quantities_correction(db, clinic, make_plan):
    plan = make_plan(clinic.patient, [(clinic.service, 5)])
    item_id = plan.items[0].id

    item = plans.update_item_quantities(
        db, actor=clinic.medic, item_id=item_id, total_quantity=8, remaining_quantity=6
    )
    assert (item.total_quantity, item.remaining_quantity) == (8, 6)

    with pytest.raises(BadRequestError):
        plans.update_item_quantities(
            db, actor=clinic.medic, item_id=item_id, total_quantity=4, remaining_quantity=5
        )


def test_item_operations_are_for_the_assigned_medic(db, clinic, make_user, make_plan):
    other_medic = make_user(UserRole.MEDIC, clinic.company)
    plan = make_plan(clinic.patient, [(clinic.service, 5)])

    with pytest.raises(ForbiddenError):
        plans.set_item_active(db, actor=other_medic, item_id=plan.items[0].id, active=False)
    with pytest.raises(ForbiddenError):
        plans.archive_item(db, actor=clinic.admin, item_id=plan.items[0].id)


def test_item_activation_rules(db, clinic, make_plan):
    plan = make_plan(clinic.patient, [(clinic.service, 5)])
    item_id = plan.items[0].id

    plans.set_item_active(db, actor=clinic.medic, item_id=item_id, active=False)
    plans.set_item_active(db, actor=clinic.medic, item_id=item_id, active=True)
    archived = plans.archive_item(db, actor=clinic.medic, item_id=item_id)

    assert archived.is_archived and not archived.is_item_active
    with pytest.raises(BadRequestError):
        plans.set_item_active(db, actor=clinic.medic, item_id=item_id, active=True)
