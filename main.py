from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from config import settings
from database import close_database, get_db, init_database
from errors import NotFound, PortalError, ValidationError
from logging_config import logger
import repositories as repo
import services
from schemas import (
    ApprovalRequest,
    AssignFacultyRequest,
    AssignStudentRequest,
    Batch,
    BatchChanges,
    CvCgpaUpdate,
    Department,
    DepartmentUpdate,
    Faculty,
    FacultyUpdate,
    GradeRequest,
    IdModel,
    Industry,
    IndustryUpdate,
    InternshipCreate,
    InternshipUpdate,
    Program,
    ProgramChanges,
    StudentCreate,
    StudentImportRequest,
    StudentChanges,
    SubmissionRequest,
    Task,
    TaskChanges,
    University,
    UniversityUpdate,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        init_database()
    except PyMongoError:
        # Requests will retry the lazy connection; /test reports the state
        logger.exception("Could not initialize MongoDB at startup")
    yield
    close_database()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- Error handling ----------
@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path")]
    field = ".".join(loc) or "request body"
    if first.get("type") == "missing":
        message = f"{field} is required"
    else:
        message = f"{field}: {first.get('msg', 'invalid value')}"
    return JSONResponse(status_code=400, content={"error": message})


@app.get("/")
def read_root():
    return {"message": "Internship Portal Backend Running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_name": settings.DATABASE_NAME,
        "connection_status": "Not Connected",
        "collections": []
    }

    try:
        db = get_db()
        response["collections"] = db.list_collection_names()[:10]
        response["database"] = "✅ Connected & Working"
        response["connection_status"] = "Connected"
    except PyMongoError as e:
        logger.warning("Database check failed: %s", e)
        response["database"] = "❌ Error"

    return response


# ---------- Universities ----------
@app.post("/universities", status_code=201)
def create_university(university: University):
    return repo.universities.create(university)


@app.get("/universities", response_model=List[dict])
def list_universities(name: Optional[str] = None):
    filt = {"name": name} if name else {}
    return repo.universities.find_many(filt)


@app.get("/universities/{university_id}")
def get_university(university_id: str):
    return repo.universities.find_by_id(university_id)


@app.put("/universities/{university_id}")
def update_university(university_id: str, changes: UniversityUpdate):
    return repo.universities.update(university_id, changes.model_dump(exclude_unset=True))


# ---------- Departments ----------
@app.post("/departments", status_code=201)
def create_department(dept: Department):
    return services.create_department(dept)


@app.get("/departments", response_model=List[dict])
def list_departments(university: Optional[str] = None):
    filt = {"university": university} if university else {}
    return repo.departments.find_many(filt)


@app.get("/department/{department_id}")
def get_department(department_id: str):
    return repo.departments.find_by_id(department_id)


@app.put("/department/{department_id}")
def update_department(department_id: str, changes: DepartmentUpdate):
    return repo.departments.update(department_id, changes.model_dump(exclude_unset=True))


@app.delete("/department/{department_id}")
def delete_department(department_id: str):
    repo.departments.delete(department_id)
    return {"message": "Department deleted successfully"}


@app.get("/departmentByemail/{email}")
def department_by_coordinator(email: str):
    dept = repo.departments.find_one({"CoordinatorEmail": email})
    if not dept:
        raise NotFound("Department not found for the given coordinator email")
    return {"departmentId": dept["id"]}


@app.get("/departmentByfocalperson/{email}")
def department_by_focal_person(email: str):
    dept = repo.departments.find_one({"focalPersonEmail": email})
    if not dept:
        raise NotFound("Department not found for the given focal person email")
    return dept


# ---------- Batches ----------
@app.get("/Batch", response_model=List[dict])
def list_batches(departmentId: Optional[str] = None):
    filt = {"departmentId": departmentId} if departmentId else {}
    return repo.batches.find_many(filt, sort=[("batchName", 1)])


@app.post("/Batch", status_code=201)
def create_batch(batch: Batch):
    created = services.create_batch(batch)
    return {"message": "Batch created successfully", "batch": created}


@app.put("/Batch")
def update_batch(changes: BatchChanges):
    updated = services.update_batch(changes)
    return {"message": "Batch updated successfully", "batch": updated}


@app.delete("/Batch")
def delete_batch(body: IdModel):
    repo.batches.delete(body.id)
    return {"message": "Batch deleted successfully"}


# ---------- Programs ----------
@app.get("/program", response_model=List[dict])
def list_programs(departmentId: Optional[str] = None):
    filt = {"departmentId": departmentId} if departmentId else {}
    return repo.programs.find_many(filt)


@app.post("/program", status_code=201)
def create_program(program: Program):
    created = services.create_program(program)
    return {"message": "Program added successfully!", "program": created}


@app.put("/program")
def update_program(changes: ProgramChanges):
    updated = repo.programs.update(changes.id, changes.model_dump(exclude_unset=True, exclude={"id"}))
    return {"message": "Program updated successfully!", "program": updated}


@app.delete("/program")
def delete_program(body: IdModel):
    repo.programs.delete(body.id)
    return {"message": "Program deleted successfully!"}


@app.get("/program/{department_id}", response_model=List[dict])
def programs_by_department(department_id: str):
    services.require(repo.departments, department_id)
    return repo.programs.find_many({"departmentId": department_id})


# ---------- Faculty ----------
@app.post("/faculty", status_code=201)
def create_faculty(member: Faculty):
    return services.create_faculty(member)


@app.get("/faculty", response_model=List[dict])
def list_faculty(departmentId: Optional[str] = None, university: Optional[str] = None):
    filt = {}
    if departmentId:
        filt["departmentId"] = departmentId
    if university:
        filt["university"] = university
    return repo.faculty.find_many(filt)


@app.get("/faculty/{faculty_id}")
def get_faculty(faculty_id: str):
    return repo.faculty.find_by_id(faculty_id)


@app.put("/faculty/{faculty_id}")
def update_faculty(faculty_id: str, changes: FacultyUpdate):
    return repo.faculty.update(faculty_id, changes.model_dump(exclude_unset=True))


@app.delete("/faculty/{faculty_id}")
def delete_faculty(faculty_id: str):
    deleted = repo.faculty.delete(faculty_id)
    return {"message": "Faculty member deleted successfully", "deletedFaculty": deleted}


@app.get("/facultyByEmail/{email}")
def faculty_by_email(email: str):
    member = repo.faculty.find_one({"email": email})
    if not member:
        raise repo.faculty.not_found()
    return member


# ---------- Students ----------
@app.get("/students", response_model=List[dict])
def list_students(department: Optional[str] = None, batch: Optional[str] = None,
                  university: Optional[str] = None):
    filt = {}
    if department:
        filt["department"] = department
    if batch:
        filt["batch"] = batch
    if university:
        filt["university"] = university
    return repo.students.find_many(filt)


@app.post("/students", status_code=201)
def create_student(student: StudentCreate):
    return services.create_student(student)


@app.put("/students")
def update_student(changes: StudentChanges):
    fields = changes.model_dump(exclude_unset=True, exclude={"id"})
    if fields.get("department"):
        services.require_all(repo.departments, fields["department"])
    return repo.students.update(changes.id, fields)


@app.delete("/students")
def delete_student(body: IdModel):
    repo.students.delete(body.id)
    return {"message": "Student deleted successfully!"}


@app.get("/students/{email}")
def student_by_email(email: str):
    student = repo.students.find_one({"email": email})
    if not student:
        raise repo.students.not_found()
    return student


@app.post("/upload-students")
def upload_students(payload: StudentImportRequest):
    if not payload.students:
        raise ValidationError("students is required")
    return services.import_students(payload.university, payload.students)


@app.put("/update-cv-cgpa")
def update_cv_cgpa(payload: CvCgpaUpdate):
    return services.update_cv_cgpa(payload.email, payload.cgpa, payload.cv)


# ---------- Industry ----------
@app.get("/Industry", response_model=List[dict])
def list_industries():
    return repo.industries.find_many()


@app.post("/Industry", status_code=201)
def create_industry(industry: Industry):
    return repo.industries.create(industry)


@app.get("/Industry/{industry_id}")
def get_industry(industry_id: str):
    return repo.industries.find_by_id(industry_id)


@app.put("/Industry/{industry_id}")
def update_industry(industry_id: str, changes: IndustryUpdate):
    return repo.industries.update(industry_id, changes.model_dump(exclude_unset=True))


@app.delete("/Industry/{industry_id}")
def delete_industry(industry_id: str):
    repo.industries.delete(industry_id)
    return {"message": "Industry deleted successfully"}


@app.get("/industryByEmail/{email}")
def industry_by_email(email: str):
    industry = repo.industries.find_one({"contactEmail": email})
    if not industry:
        raise repo.industries.not_found()
    return industry


@app.get("/IndustryByname/{name}")
def industry_by_name(name: str):
    industry = repo.industries.find_one({"name": name})
    if not industry:
        raise repo.industries.not_found()
    return {"id": industry["id"], "name": industry["name"]}


# ---------- Internships ----------
@app.post("/internships", status_code=201)
def create_internship(internship: InternshipCreate):
    return services.create_internship(internship)


@app.get("/internships", response_model=List[dict])
def list_internships(universityId: Optional[str] = None):
    filt = {"universityId": universityId} if universityId else {}
    return repo.internships.find_many(filt, sort=[("created_at", -1)])


@app.put("/internships")
def approve_internship(body: ApprovalRequest):
    return services.approve_internship(body.id, body.isApproved)


@app.delete("/internships")
def delete_internship(body: IdModel):
    repo.internships.delete(body.id)
    return {"message": "Internship deleted successfully"}


@app.get("/internships/{internship_id}")
def get_internship(internship_id: str):
    return repo.internships.find_by_id(internship_id)


@app.put("/internships/{internship_id}")
def update_internship(internship_id: str, changes: InternshipUpdate):
    return services.update_internship(internship_id, changes.model_dump(exclude_unset=True))


@app.get("/internshipByDepartment/{department_id}", response_model=List[dict])
def internships_by_department(department_id: str):
    return repo.internships.find_many({"assignedDepartment": department_id})


@app.put("/internship/{internship_id}")
def assign_student(internship_id: str, body: AssignStudentRequest):
    internship = services.assign_student(internship_id, body.studentId)
    return {"message": "Student assigned to internship successfully.", "internship": internship}


@app.put("/internship/{internship_id}/faculty")
def assign_faculty(internship_id: str, body: AssignFacultyRequest):
    internship = services.assign_faculty(internship_id, body.facultyId)
    return {"message": "Faculty assigned to internship successfully.", "internship": internship}


@app.put("/MarkasComplete/{internship_id}")
def mark_as_complete(internship_id: str):
    result = services.complete_internship(internship_id)
    return {
        "message": "Internship marked as complete and students updated successfully.",
        **result,
    }


@app.get("/studentNoInternship/{university_id}", response_model=List[dict])
def students_without_internship(university_id: str, department: Optional[str] = None):
    return services.unassigned_students(university_id, department)


@app.get("/studentsInInternship/{internship_id}", response_model=List[dict])
def students_in_internship(internship_id: str):
    return services.students_in_internship(internship_id)


@app.post("/reconcileInternships/{university_id}")
def reconcile_internships(university_id: str):
    return services.reconcile_completion(university_id)


# ---------- Tasks ----------
@app.post("/tasks", status_code=201)
def create_task(task: Task):
    created = services.create_task(task)
    return {"message": "Task created successfully!", "task": created}


@app.get("/tasks", response_model=List[dict])
def list_tasks(internshipId: Optional[str] = None):
    if not internshipId:
        raise ValidationError("Internship ID is required.")
    return repo.tasks.find_many({"internshipId": internshipId}, sort=[("deadline", 1)])


@app.get("/tasks/{task_id}")
def get_task(task_id: str):
    return repo.tasks.find_by_id(task_id)


@app.put("/tasks")
def update_task(changes: TaskChanges):
    updated = repo.tasks.update(changes.id, changes.model_dump(exclude_unset=True, exclude={"id"}))
    return {"message": "Task updated successfully", "task": updated}


@app.delete("/tasks")
def delete_task(body: IdModel):
    repo.tasks.delete(body.id)
    return {"message": "Task deleted successfully"}


# ---------- Submissions ----------
@app.post("/submission/{task_id}", status_code=201)
def submit_task(task_id: str, body: SubmissionRequest):
    submission = services.create_submission(task_id, body.studentName, body.file, body.studentId)
    return {"message": "File uploaded successfully!", "submission": submission}


@app.get("/submission/{task_id}", response_model=List[dict])
def list_submissions(task_id: str):
    return repo.submissions.find_many({"taskId": task_id}, sort=[("submittedAt", -1)])


@app.put("/submission/{submission_id}")
def grade_submission(submission_id: str, body: GradeRequest):
    return services.grade_submission(submission_id, body.grade)


@app.get("/gradeReport/{internship_id}/{student_id}", response_model=List[dict])
def grade_report(internship_id: str, student_id: str):
    return services.grade_report(internship_id, student_id)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.SERVER_HOST, port=settings.PORT)
