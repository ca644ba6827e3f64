from decimal import Decimal

import pytest

from kinetoflow.core.errors import BadRequestError, ForbiddenError, NotFoundError
from kinetoflow.models import UserRole
from kinetoflow.schemas.catalog import PackageIn, ServiceIn, ServiceItemIn
from kinetoflow.services import catalog


def service_payload(name="Dry Needling", **overrides):
    data = {"name": name, "duration_minutes": 45, "price": Decimal("35.00")}
    data.update(overrides)
    return ServiceIn(**data)


def test_create_service_rejects_case_insensitive_duplicate(db, clinic):
    with pytest.raises(BadRequestError):
        catalog.create_service(db, actor=clinic.admin, payload=service_payload("manual therapy"))


def test_same_service_name_is_allowed_in_another_tenant(db, clinic, make_company, make_user):
    other = make_company("Other Clinic")
    other_admin = make_user(UserRole.TENANT_ADMIN, other)

    service = catalog.create_service(
        db, actor=other_admin, payload=service_payload("Manual Therapy")
    )

    assert service.tenant_id == other.id


def test_medic_cannot_create_services(db, clinic):
    with pytest.raises(ForbiddenError):
        catalog.create_service(db, actor=clinic.medic, payload=service_payload())


def test_get_service_from_another_tenant_is_not_found(db, clinic, make_company, make_user):
    other_admin = make_user(UserRole.TENANT_ADMIN, make_company("Other Clinic"))

    with pytest.raises(NotFoundError):
        catalog.get_service(db, actor=other_admin, service_id=clinic.service.id)


def test_service_in_active_package_cannot_be_deactivated(db, clinic, make_package):
    make_package(clinic.company, [(clinic.service, 5)], name="Back Pain Recovery")

    with pytest.raises(BadRequestError) as excinfo:
        catalog.set_service_active(
            db, actor=clinic.admin, service_id=clinic.service.id, active=False
        )

    assert "Back Pain Recovery" in excinfo.value.message


def test_service_update_to_inactive_honours_active_packages(db, clinic, make_package):
    make_package(clinic.company, [(clinic.service, 5)])

    with pytest.raises(BadRequestError):
        catalog.update_service(
            db,
            actor=clinic.admin,
            service_id=clinic.service.id,
            payload=service_payload("Manual Therapy", active=False),
        )


def test_service_deactivates_once_packages_are_inactive(db, clinic, make_package):
    package = make_package(clinic.company, [(clinic.service, 5)])
    catalog.set_package_active(db, actor=clinic.admin, package_id=package.id, active=False)

    service = catalog.set_service_active(
        db, actor=clinic.admin, service_id=clinic.service.id, active=False
    )

    assert service.is_active is False


def test_package_with_inactive_service_cannot_be_activated(db, clinic, make_service, make_package):
    massage = make_service(clinic.company, "Massage")
    package = make_package(clinic.company, [(massage, 2)], active=False)
    catalog.set_service_active(db, actor=clinic.admin, service_id=massage.id, active=False)

    with pytest.raises(BadRequestError):
        catalog.set_package_active(db, actor=clinic.admin, package_id=package.id, active=True)


def test_create_package_validates_items(db, clinic, make_company, make_service):
    foreign = make_service(make_company("Other Clinic"), "Foreign")
    inactive = make_service(clinic.company, "Old Service", active=False)

    cases = [
        [],
        [
            ServiceItemIn(service_id=clinic.service.id, quantity=1),
            ServiceItemIn(service_id=clinic.service.id, quantity=2),
        ],
        [ServiceItemIn(service_id=foreign.id, quantity=1)],
        [ServiceItemIn(service_id=inactive.id, quantity=1)],
    ]
    for items in cases:
        with pytest.raises(BadRequestError):
            catalog.create_package(
                db, actor=clinic.admin, payload=PackageIn(name="Pack", items=items)
            )


def test_create_package_and_reject_duplicate_name(db, clinic):
    payload = PackageIn(
        name="Knee Rehab",
        total_price=Decimal("300.00"),
        items=[ServiceItemIn(service_id=clinic.service.id, quantity=10)],
    )
    package = catalog.create_package(db, actor=clinic.admin, payload=payload)

    assert [(item.service_id, item.quantity) for item in package.items] == [
        (clinic.service.id, 10)
    ]
    with pytest.raises(BadRequestError):
        catalog.create_package(
            db, actor=clinic.admin, payload=payload.model_copy(update={"name": "KNEE REHAB"})
        )


def test_update_package_reconciles_items(db, clinic, make_service, make_package):
    massage = make_service(clinic.company, "Massage")
    laser = make_service(clinic.company, "Laser")
    package = make_package(clinic.company, [(clinic.service, 5), (massage, 2)])

    updated = catalog.update_package(
        db,
        actor=clinic.admin,
        package_id=package.id,
        payload=PackageIn(
            name="Recovery Pack",
            items=[
                ServiceItemIn(service_id=clinic.service.id, quantity=8),
                ServiceItemIn(service_id=laser.id, quantity=3),
            ],
        ),
    )

    quantities = {item.service_id: item.quantity for item in updated.items}
    assert quantities == {clinic.service.id: 8, laser.id: 3}


def test_list_services_can_filter_active(db, clinic, make_service):
    make_service(clinic.company, "Archived", active=False)

    names = [s.name for s in catalog.list_services(db, actor=clinic.medic, active_only=True)]

    assert names == ["Manual Therapy"]


def test_reconciling_unchanged_items_is_a_no_op(db, clinic, make_service, make_package):
    massage = make_service(clinic.company, "Massage")
    package = make_package(clinic.company, [(clinic.service, 5), (massage, 2)])
    item_ids = {item.id for item in package.items}
    items = [
        ServiceItemIn(service_id=item.service_id, quantity=item.quantity)
        for item in package.items
    ]
    services = catalog.load_services_for_items(db, actor=clinic.admin, items=items)

    assert catalog.reconcile_package_items(package, items, services) == (0, 0, 0)
    assert {item.id for item in package.items} == item_ids
