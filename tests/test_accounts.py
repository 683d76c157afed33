from datetime import time

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import AuthorizationError, NotFoundError, StorageError, ValidationError
from app.core.security import UserRole
from app.models import Appointment, Doctor, Patient, User
from app.services.account_service import AccountService
from app.services.doctor_service import DoctorService


class TestDeleteUser:

    def test_deleting_a_doctor_removes_their_appointments(
        self, db, admin, make_patient, make_doctor, insert_appointment
    ):
        doctor = make_doctor("leaving@example.com")
        colleague = make_doctor("staying@example.com")
        first = make_patient("first@example.com")
        second = make_patient("second@example.com")
        insert_appointment(first, doctor, time(9, 0))
        insert_appointment(second, doctor, time(9, 30))
        kept_id = insert_appointment(first, colleague, time(11, 0))

        removed = AccountService(db).delete_user(admin, doctor.user_id)

        assert removed == 2
        db.expire_all()
        assert db.get(User, doctor.user_id) is None
        assert db.get(Doctor, doctor.profile_id) is None
        assert [a.id for a in db.query(Appointment).all()] == [kept_id]

    def test_deleting_a_patient(self, db, admin, make_patient, make_doctor, insert_appointment):
        patient = make_patient()
        insert_appointment(patient, make_doctor())

        assert AccountService(db).delete_user(admin, patient.user_id) == 1

        db.expire_all()
        assert db.get(Patient, patient.profile_id) is None
        assert db.query(Appointment).count() == 0
        assert db.query(Doctor).count() == 1

    def test_user_without_appointments(self, db, admin, make_patient):
        patient = make_patient()

        assert AccountService(db).delete_user(admin, patient.user_id) == 0

    def test_failure_leaves_everything_in_place(
        self, db, admin, make_patient, make_doctor, insert_appointment, monkeypatch
    ):
        doctor = make_doctor()
        insert_appointment(make_patient(), doctor)
        service = AccountService(db)

        def broken_delete(user_id):
            raise OperationalError("DELETE FROM users", {}, Exception("disk I/O error"))

        monkeypatch.setattr(service, "_delete_user_row", broken_delete)

        with pytest.raises(StorageError) as exc_info:
            service.delete_user(admin, doctor.user_id)

        assert exc_info.value.status_code == 503
        db.expire_all()
        assert db.get(User, doctor.user_id) is not None
        assert db.get(Doctor, doctor.profile_id) is not None
        assert db.query(Appointment).count() == 1

    def test_unknown_user(self, db, admin):
        with pytest.raises(NotFoundError):
            AccountService(db).delete_user(admin, 4242)

    def test_admin_cannot_delete_themselves(self, db, admin):
        with pytest.raises(ValidationError):
            AccountService(db).delete_user(admin, admin.user_id)

    def test_administrators_are_protected(self, db, admin):
        other = User(email="root@example.com", password_hash="x", role=UserRole.ADMIN, is_active=True)
        db.add(other)
        db.commit()

        with pytest.raises(AuthorizationError):
            AccountService(db).delete_user(admin, other.id)

        db.expire_all()
        assert db.get(User, other.id) is not None

    def test_only_admins_delete(self, db, make_patient, make_doctor):
        patient = make_patient()
        doctor = make_doctor()

        with pytest.raises(AuthorizationError):
            AccountService(db).delete_user(doctor, patient.user_id)


class TestDoctorService:

    def test_list_is_ordered_by_name(self, db, make_doctor):
        make_doctor("zhang@example.com")
        make_doctor("adams@example.com")
        make_doctor("moreno@example.com")

        names = [d.last_name for d in DoctorService(db).list_doctors()]

        assert names == ["Adams", "Moreno", "Zhang"]

    def test_update_schedule(self, db, make_doctor):
        doctor = make_doctor()

        updated = DoctorService(db).update_schedule(doctor, time(9, 0, 45), time(13, 0), 20)

        assert updated.work_start == time(9, 0)
        assert updated.work_end == time(13, 0)
        assert updated.slot_duration_minutes == 20

    @pytest.mark.parametrize(
        ("start", "end", "duration"),
        [
            (time(13, 0), time(9, 0), 30),
            (time(9, 0), time(9, 0), 30),
            (time(9, 0), time(13, 0), 5),
            (time(9, 0), time(13, 0), 180),
        ],
    )
    def test_invalid_schedule_is_rejected(self, db, make_doctor, start, end, duration):
        doctor = make_doctor(work_start=time(8, 0), work_end=time(12, 0))

        with pytest.raises(ValidationError):
            DoctorService(db).update_schedule(doctor, start, end, duration)

        db.expire_all()
        stored = db.get(Doctor, doctor.profile_id)
        assert (stored.work_start, stored.work_end) == (time(8, 0), time(12, 0))

    def test_only_doctors_set_schedules(self, db, make_patient):
        with pytest.raises(AuthorizationError):
            DoctorService(db).update_schedule(make_patient(), time(9, 0), time(13, 0), 30)
