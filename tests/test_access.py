import pytest

from kinetoflow.core.errors import BadRequestError, ForbiddenError, NotFoundError
from kinetoflow.models import UserRole
from kinetoflow.services import access, companies, users


def test_visibility_is_limited_to_own_tenant(clinic, make_company, make_user):
    other = make_company("Other Clinic")
    platform_admin = make_user(UserRole.PLATFORM_ADMIN)

    assert access.is_visible(clinic.admin, clinic.company.id)
    assert not access.is_visible(clinic.admin, other.id)
    assert not access.is_visible(clinic.admin, None)
    assert access.is_visible(platform_admin, other.id)


def test_patient_data_visibility(clinic, make_user):
    other_medic = make_user(UserRole.MEDIC, clinic.company)
    other_patient = make_user(UserRole.PATIENT, clinic.company)

    assert access.can_view_patient_data(clinic.patient, clinic.patient)
    assert access.can_view_patient_data(clinic.admin, clinic.patient)
    assert access.can_view_patient_data(clinic.medic, clinic.patient)
    assert not access.can_view_patient_data(other_medic, clinic.patient)
    assert not access.can_view_patient_data(other_patient, clinic.patient)


def test_get_user_with_role_hides_wrong_role(db, clinic):
    with pytest.raises(NotFoundError) as excinfo:
        access.get_user_with_role(db, clinic.medic.id, UserRole.PATIENT, actor=clinic.admin)

    assert excinfo.value.message == "Patient not found"


def test_tenantless_actor_is_refused(make_user):
    with pytest.raises(ForbiddenError):
        access.require_tenant(make_user(UserRole.PLATFORM_ADMIN))


def test_admin_toggles_medics_but_not_admins(db, clinic, make_user):
    second_admin = make_user(UserRole.TENANT_ADMIN, clinic.company)

    medic = users.set_user_active(db, actor=clinic.admin, user_id=clinic.medic.id, active=False)
    assert medic.is_active is False

    with pytest.raises(ForbiddenError):
        users.set_user_active(db, actor=clinic.admin, user_id=second_admin.id, active=False)
    with pytest.raises(ForbiddenError):
        users.set_user_active(db, actor=clinic.admin, user_id=clinic.admin.id, active=False)


def test_pending_invitee_cannot_be_activated_manually(db, clinic, make_user):
    pending = make_user(UserRole.PATIENT, clinic.company, active=False)
    pending.invitation_token = "pending-token"
    db.commit()

    with pytest.raises(BadRequestError):
        users.set_user_active(db, actor=clinic.admin, user_id=pending.id, active=True)


def test_assign_medic_requires_active_medic_of_same_tenant(db, clinic, make_company, make_user):
    inactive_medic = make_user(UserRole.MEDIC, clinic.company, active=False)
    foreign_medic = make_user(UserRole.MEDIC, make_company("Other Clinic"))

    with pytest.raises(BadRequestError):
        users.assign_medic(
            db, actor=clinic.admin, patient_id=clinic.patient.id, medic_id=inactive_medic.id
        )
    with pytest.raises(NotFoundError):
        users.assign_medic(
            db, actor=clinic.admin, patient_id=clinic.patient.id, medic_id=foreign_medic.id
        )

    patient = users.assign_medic(db, actor=clinic.admin, patient_id=clinic.patient.id, medic_id=None)
    assert patient.assigned_medic_id is None


def test_medic_lists_only_assigned_active_patients(db, clinic, make_user):
    make_user(UserRole.PATIENT, clinic.company)
    make_user(UserRole.PATIENT, clinic.company, active=False, assigned_medic=clinic.medic)

    patients = users.list_medic_patients(db, actor=clinic.medic)

    assert [p.id for p in patients] == [clinic.patient.id]


def test_company_creation_is_for_platform_admins(db, clinic, make_user):
    platform_admin = make_user(UserRole.PLATFORM_ADMIN)

    company = companies.create_company(db, actor=platform_admin, name="New Clinic", address=None)
    assert company.name == "New Clinic"

    with pytest.raises(BadRequestError):
        companies.create_company(db, actor=platform_admin, name="new clinic", address=None)
    with pytest.raises(ForbiddenError):
        companies.create_company(db, actor=clinic.admin, name="Mine", address=None)


def test_tenant_admin_updates_only_the_address(db, clinic):
    company = companies.update_my_company(db, actor=clinic.admin, address="Harbour Road 2")
    assert company.address == "Harbour Road 2"
    assert company.name == "Kineto Clinic"

    unchanged = companies.update_my_company(db, actor=clinic.admin, address=None)
    assert unchanged.address == "Harbour Road 2"
