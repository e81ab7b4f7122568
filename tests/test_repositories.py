"""
Unit tests for the collection repositories and reference checks
"""
import pytest
from bson import ObjectId

import services
from errors import ConflictError, NotFound, ValidationError
from repositories import batches, departments, faculty, students, to_public
from schemas import Batch, BatchChanges, Department, Faculty, Program, StudentCreate, Task


class TestStudentRoundTrip:
    def test_create_then_find_returns_submitted_fields(self, university, department, payloads):
        payload = payloads.student(university["id"], department["id"])

        created = services.create_student(StudentCreate(**payload))
        found = students.find_by_id(created["id"])

        for field, value in payload.items():
            assert found[field] == value
        assert found["didInternship"] is False
        assert ObjectId.is_valid(found["id"])
        assert "_id" not in found

    def test_client_cannot_preset_did_internship(self, university, department, payloads):
        payload = payloads.student(university["id"], department["id"], didInternship=True)

        created = services.create_student(StudentCreate(**payload))

        assert created["didInternship"] is False


class TestUniqueness:
    def test_duplicate_department_cnic_conflicts(self, university, payloads):
        first = payloads.department(university["id"])
        services.create_department(Department(**first))
        second = payloads.department(university["id"], cnic=first["cnic"])

        with pytest.raises(ConflictError):
            services.create_department(Department(**second))

        assert len(departments.find_many({"cnic": first["cnic"]})) == 1

    def test_duplicate_department_email_conflicts(self, university, payloads):
        first = payloads.department(university["id"])
        services.create_department(Department(**first))
        second = payloads.department(university["id"], email=first["email"])

        with pytest.raises(ConflictError):
            services.create_department(Department(**second))

    def test_duplicate_student_email_conflicts(self, university, department, payloads, make_student):
        existing = make_student()
        payload = payloads.student(university["id"], department["id"], email=existing["email"])

        with pytest.raises(ConflictError):
            services.create_student(StudentCreate(**payload))


class TestFaculty:
    def test_create_keeps_academic_qualification(self, faculty_member):
        found = faculty.find_by_id(faculty_member["id"])

        qualification = found["lastAcademicQualification"]
        assert qualification["degreeType"] == "PhD"
        assert qualification["degreeAwardingInstitute"] == "LUMS"
        assert "leavingDate" not in found

    def test_duplicate_faculty_cnic_conflicts(self, university, department, payloads, faculty_member):
        payload = payloads.faculty(university["id"], department["id"], cnic=faculty_member["cnic"])

        with pytest.raises(ConflictError):
            services.create_faculty(Faculty(**payload))

    def test_duplicate_faculty_email_conflicts(self, university, department, payloads, faculty_member):
        payload = payloads.faculty(university["id"], department["id"], email=faculty_member["email"])

        with pytest.raises(ConflictError):
            services.create_faculty(Faculty(**payload))

        assert len(faculty.find_many({"email": faculty_member["email"]})) == 1

    def test_faculty_requires_existing_department(self, university, payloads):
        payload = payloads.faculty(university["id"], str(ObjectId()))

        with pytest.raises(NotFound):
            services.create_faculty(Faculty(**payload))


class TestRepositoryOperations:
    def test_find_missing_raises_not_found(self, db):
        with pytest.raises(NotFound) as exc:
            students.find_by_id(str(ObjectId()))
        assert exc.value.message == "Student not found"

    def test_malformed_id_raises_validation_error(self, db):
        with pytest.raises(ValidationError):
            students.find_by_id("12345")

    def test_update_returns_new_document(self, make_student):
        student = make_student()

        updated = students.update(student["id"], {"section": "B"})

        assert updated["section"] == "B"
        assert updated["name"] == student["name"]

    def test_update_without_fields_rejected(self, make_student):
        student = make_student()

        with pytest.raises(ValidationError):
            students.update(student["id"], {})

    def test_update_missing_raises_not_found(self, db):
        with pytest.raises(NotFound):
            students.update(str(ObjectId()), {"section": "B"})

    def test_delete(self, make_student):
        student = make_student()

        deleted = students.delete(student["id"])

        assert deleted["id"] == student["id"]
        assert not students.exists(student["id"])
        with pytest.raises(NotFound):
            students.delete(student["id"])

    def test_find_many_filters_array_membership(self, department, make_student):
        student = make_student()

        result = students.find_many({"department": department["id"]})

        assert [s["id"] for s in result] == [student["id"]]

    def test_to_public_handles_empty(self):
        assert to_public(None) is None


class TestReferenceChecks:
    def test_department_requires_existing_university(self, db, payloads):
        with pytest.raises(NotFound):
            services.create_department(Department(**payloads.department(str(ObjectId()))))

    def test_student_requires_existing_department(self, university, payloads):
        payload = payloads.student(university["id"], str(ObjectId()))

        with pytest.raises(NotFound):
            services.create_student(StudentCreate(**payload))

    def test_task_requires_existing_internship(self, db):
        task = Task(
            internshipId=str(ObjectId()),
            title="Weekly report",
            description="Summarize the week",
            deadline="2024-06-07T17:00:00",
            marks=10,
            weightage=5,
        )

        with pytest.raises(NotFound):
            services.create_task(task)


class TestImportStudents:
    def test_incomplete_rows_are_skipped(self, university, department, payloads):
        good = payloads.student(university["id"], department["id"])
        missing_section = payloads.student(university["id"], department["id"])
        del missing_section["section"]
        unknown_department = payloads.student(university["id"], str(ObjectId()))

        result = services.import_students(university["id"], [good, missing_section, unknown_department])

        assert result == {"inserted": 1, "skipped": 2}
        assert students.find_one({"email": good["email"]})["didInternship"] is False

    def test_duplicate_email_fails_after_other_rows_are_inserted(self, university, department, payloads, make_student):
        existing = make_student()
        fresh = payloads.student(university["id"], department["id"])
        clash = payloads.student(university["id"], department["id"], email=existing["email"])

        with pytest.raises(ConflictError):
            services.import_students(university["id"], [clash, fresh])

        assert students.find_one({"email": fresh["email"]}) is not None
        assert len(students.find_many({"email": existing["email"]})) == 1


class TestBatchesAndPrograms:
    def test_batch_requires_existing_departments(self, department):
        with pytest.raises(NotFound):
            services.create_batch(Batch(batchName="FA21", departmentId=[department["id"], str(ObjectId())]))

        assert batches.find_many() == []

    def test_batch_update_replaces_departments(self, university, department, payloads):
        other = services.create_department(Department(**payloads.department(university["id"])))
        batch = services.create_batch(Batch(batchName="FA21", departmentId=[department["id"]]))

        updated = services.update_batch(BatchChanges(id=batch["id"], batchName="SP22", departmentId=[other["id"]]))

        assert updated["batchName"] == "SP22"
        assert updated["departmentId"] == [other["id"]]

    def test_program_requires_existing_department(self, db):
        program = Program(
            name="BS Computer Science",
            departmentId=str(ObjectId()),
            startDate="2015-09-01T00:00:00",
            category="Undergraduate",
            durationYears=4,
            contactEmail="bscs@example.edu",
            programHead="Dr. Ahmed",
        )

        with pytest.raises(NotFound):
            services.create_program(program)
