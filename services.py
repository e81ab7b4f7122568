"""
Business operations that span more than one collection.

Two groups live here:

* creation helpers that check soft references (the ids a new record points
  at) before writing, since MongoDB does not enforce them;
* the internship assignment workflow. ``Student.didInternship`` is a cached
  fact ("this student is assigned to some completed internship") and is only
  ever written from this module.

There are no multi-document transactions. ``complete_internship`` writes the
internship first and the students second; if the second write fails the
internship stays complete and calling it again finishes the job, since
setting the flag twice is harmless. ``reconcile_completion`` recomputes the
flag for a whole university.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from pydantic import ValidationError as SchemaValidationError

from errors import StoreError, ValidationError
from logging_config import get_logger
from repositories import (
    Repository,
    batches,
    departments,
    faculty,
    internships,
    programs,
    students,
    submissions,
    tasks,
    universities,
)
from schemas import (
    Batch,
    BatchChanges,
    Department,
    Faculty,
    InternshipCreate,
    Program,
    StudentCreate,
    Submission,
    Task,
)

logger = get_logger("services")


def require(repo: Repository, id: Any) -> None:
    """Raise NotFound unless the referenced record exists"""
    if not repo.exists(id):
        raise repo.not_found()


def require_all(repo: Repository, ids: Iterable[Any]) -> None:
    for id in set(ids):
        require(repo, id)


# ---------- Creation with reference checks ----------
def create_department(data: Department) -> Dict[str, Any]:
    require(universities, data.university)
    return departments.create(data)


def create_batch(data: Batch) -> Dict[str, Any]:
    require_all(departments, data.departmentId)
    return batches.create(data)


def update_batch(changes: BatchChanges) -> Dict[str, Any]:
    require_all(departments, changes.departmentId)
    return batches.update(changes.id, changes.model_dump(exclude={"id"}))


def create_program(data: Program) -> Dict[str, Any]:
    require(departments, data.departmentId)
    return programs.create(data)


def create_faculty(data: Faculty) -> Dict[str, Any]:
    require(departments, data.departmentId)
    require(universities, data.university)
    return faculty.create(data)


def create_student(data: StudentCreate) -> Dict[str, Any]:
    require(universities, data.university)
    require_all(departments, data.department)
    return students.create(data.to_student())


def create_internship(data: InternshipCreate) -> Dict[str, Any]:
    require(universities, data.universityId)
    require_all(departments, data.assignedDepartment)
    return internships.create(data.to_internship())


def update_internship(internship_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    if fields.get("assignedDepartment"):
        require_all(departments, fields["assignedDepartment"])
    return internships.update(internship_id, fields)


def create_task(data: Task) -> Dict[str, Any]:
    require(internships, data.internshipId)
    return tasks.create(data)


def create_submission(task_id: str, student_name: str, file_url: str,
                      student_id: Optional[str] = None) -> Dict[str, Any]:
    require(tasks, task_id)
    if student_id:
        require(students, student_id)
    submission = Submission(
        taskId=task_id,
        studentId=student_id,
        studentName=student_name,
        fileUrl=file_url,
    )
    return submissions.create(submission)


def grade_submission(submission_id: str, grade: float) -> Dict[str, Any]:
    return submissions.update(submission_id, {"grade": grade})


def import_students(university_id: str, rows: List[Dict[str, Any]]) -> Dict[str, int]:
    """Insert already-parsed spreadsheet rows; incomplete rows are skipped"""
    require(universities, university_id)

    known_departments: Dict[str, bool] = {}
    to_insert = []
    skipped = 0
    for row in rows:
        try:
            candidate = StudentCreate(**{**row, "university": university_id})
        except SchemaValidationError:
            skipped += 1
            continue
        missing_department = False
        for dept_id in candidate.department:
            if dept_id not in known_departments:
                try:
                    known_departments[dept_id] = departments.exists(dept_id)
                except ValidationError:  # malformed id counts as missing
                    known_departments[dept_id] = False
            if not known_departments[dept_id]:
                missing_department = True
        if missing_department:
            skipped += 1
            continue
        to_insert.append(candidate.to_student())

    inserted = students.insert_many(to_insert)
    logger.info("Imported %d students for university %s (%d skipped)",
                len(inserted), university_id, skipped)
    return {"inserted": len(inserted), "skipped": skipped}


def update_cv_cgpa(email: str, cgpa: float, cv: Optional[str] = None) -> Dict[str, Any]:
    student = students.find_one({"email": email})
    if not student:
        raise students.not_found()
    fields: Dict[str, Any] = {"cgpa": cgpa}
    if cv:
        fields["cv"] = cv
    return students.update(student["id"], fields)


# ---------- Assignment workflow ----------
def _flag_students(student_ids: Iterable[str]) -> int:
    """Set didInternship on the given students; returns how many changed"""
    oids = []
    for sid in student_ids:
        try:
            oids.append(students.object_id(sid))
        except ValidationError:
            logger.warning("Skipping malformed assigned student id %r", sid)
    if not oids:
        return 0
    return students.update_many(
        {"_id": {"$in": oids}},
        {"$set": {"didInternship": True, "updated_at": datetime.now(timezone.utc)}},
    )


def assign_student(internship_id: str, student_id: str) -> Dict[str, Any]:
    """Add a student to an internship's assigned set.

    Repeating the call leaves a single entry ($addToSet). Capacity is not
    enforced; going over numberOfStudents is only logged. When the internship
    is already complete the student's didInternship flag is set as well.
    """
    internships.object_id(internship_id)
    student_oid = students.object_id(student_id)
    require(students, student_oid)

    internship = internships.find_one_and_update(
        internship_id,
        {"$addToSet": {"assignedStudents": str(student_oid)}},
    )

    assigned = internship.get("assignedStudents", [])
    capacity = internship.get("numberOfStudents")
    if capacity is not None and len(assigned) > capacity:
        logger.warning("Internship %s has %d students assigned for %d seats",
                       internship_id, len(assigned), capacity)

    if internship.get("isComplete"):
        _flag_students([str(student_oid)])

    return internship


def assign_faculty(internship_id: str, faculty_id: str) -> Dict[str, Any]:
    internships.object_id(internship_id)
    faculty_oid = faculty.object_id(faculty_id)
    require(faculty, faculty_oid)
    return internships.find_one_and_update(
        internship_id,
        {"$addToSet": {"assignedFaculty": str(faculty_oid)}},
    )


def approve_internship(internship_id: str, approve: bool) -> Dict[str, Any]:
    return internships.update(internship_id, {"isApproved": approve})


def complete_internship(internship_id: str) -> Dict[str, Any]:
    """Mark an internship complete and flag every assigned student.

    The completion write returns the assigned list as it stands right after
    isComplete was set, so a student assigned concurrently is either in that
    list or is flagged by assign_student itself.
    """
    internship = internships.find_one_and_update(
        internship_id,
        {"$set": {"isComplete": True, "updated_at": datetime.now(timezone.utc)}},
    )
    assigned = internship.get("assignedStudents", [])

    try:
        flagged = _flag_students(assigned)
    except StoreError:
        logger.error("Internship %s marked complete but student propagation failed; "
                     "re-run completion to reconcile", internship_id)
        raise

    logger.info("Internship %s completed, %d of %d assigned students flagged",
                internship_id, flagged, len(assigned))
    return {"internship": internship, "studentsFlagged": flagged}


def unassigned_students(university_id: str, department: Optional[str] = None) -> List[Dict[str, Any]]:
    """Students of a university not assigned to any of its internships"""
    require(universities, university_id)
    assigned: Set[str] = set()
    for internship in internships.find_many({"universityId": university_id}):
        assigned.update(internship.get("assignedStudents") or [])

    student_filter: Dict[str, Any] = {"university": university_id}
    if department:
        student_filter["department"] = department

    return [s for s in students.find_many(student_filter) if s["id"] not in assigned]


def students_in_internship(internship_id: str) -> List[Dict[str, Any]]:
    internship = internships.find_by_id(internship_id)
    return students.find_by_ids(internship.get("assignedStudents") or [])


def reconcile_completion(university_id: str) -> Dict[str, int]:
    """Recompute didInternship for every student of a university"""
    require(universities, university_id)
    completed: Set[str] = set()
    for internship in internships.find_many({"universityId": university_id, "isComplete": True}):
        completed.update(internship.get("assignedStudents") or [])

    to_flag, to_clear = [], []
    university_students = students.find_many({"university": university_id})
    for student in university_students:
        should_flag = student["id"] in completed
        if should_flag and not student.get("didInternship"):
            to_flag.append(student["id"])
        elif not should_flag and student.get("didInternship"):
            to_clear.append(students.object_id(student["id"]))

    flagged = _flag_students(to_flag)
    cleared = 0
    if to_clear:
        cleared = students.update_many(
            {"_id": {"$in": to_clear}},
            {"$set": {"didInternship": False, "updated_at": datetime.now(timezone.utc)}},
        )

    logger.info("Reconciled university %s: %d flagged, %d cleared",
                university_id, flagged, cleared)
    return {"checked": len(university_students), "flagged": flagged, "cleared": cleared}


def grade_report(internship_id: str, student_id: str) -> List[Dict[str, Any]]:
    """Per-task marks of one student in one internship"""
    internships.object_id(internship_id)
    students.object_id(student_id)

    internship_tasks = tasks.find_many({"internshipId": internship_id}, sort=[("deadline", 1)])
    task_ids = [t["id"] for t in internship_tasks]
    latest: Dict[str, Dict[str, Any]] = {}
    if task_ids:
        for sub in submissions.find_many(
            {"studentId": student_id, "taskId": {"$in": task_ids}},
            sort=[("submittedAt", 1)],
        ):
            latest[sub["taskId"]] = sub

    report = []
    for task in internship_tasks:
        submission = latest.get(task["id"])
        if submission is None:
            obtained: Any = "Not Submitted"
        else:
            obtained = submission.get("grade", "Not Graded")
        report.append({
            "taskTitle": task["title"],
            "totalMarks": task["marks"],
            "obtainedMarks": obtained,
        })
    return report
