"""
Database Schemas for the Internship Management Portal

Each Pydantic model corresponds to a MongoDB collection.
Collection name = lowercase of class name

Key Collections:
- University: root tenant every other record points at
- Department: academic department with HOD, coordinator and focal person
- Batch: intake label (e.g. FA21) offered by one or more departments
- Program: degree program run by a department
- Faculty: teaching staff of a department
- Student: enrolled students; didInternship is derived, never client-written
- Industry: host organization that offers and approves internships
- Internship: placements with their assigned students, faculty and departments
- Task: graded work items inside an internship
- Submission: a student's upload for a task

References between collections are stored as id strings and are checked by
the service layer, not by the database.
"""

from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import ClassVar, FrozenSet, Optional, List, Literal
from datetime import datetime, timezone


# ---------- Partial updates ----------
class PartialUpdate(BaseModel):
    """Fields a client may change. Omitted fields are left alone; an explicit
    null is only accepted for the fields named in NULLABLE."""
    NULLABLE: ClassVar[FrozenSet[str]] = frozenset()

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, value, info):
        if value is None and info.field_name not in cls.NULLABLE:
            raise ValueError("cannot be null")
        return value


# ---------- Core ----------
class University(BaseModel):
    name: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    contactEmail: EmailStr


class UniversityUpdate(PartialUpdate):
    name: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = Field(None, min_length=1)
    contactEmail: Optional[EmailStr] = None


class Department(BaseModel):
    name: str = Field(..., description="Department name (e.g., Computer Science)")
    startDate: datetime
    category: str
    hodName: str
    honorific: str = Field("Mr.")
    cnic: str = Field(..., description="National identity number of the HOD, unique")
    email: EmailStr
    phone: str
    landLine: Optional[str] = None
    focalPersonName: str
    focalPersonHonorific: str = Field("Mr.")
    focalPersonCnic: str
    focalPersonEmail: EmailStr
    focalPersonPhone: str
    CoordinatorName: str
    CoordinatorHonorific: str = Field("Mr.")
    CoordinatorCnic: str
    CoordinatorEmail: EmailStr
    CoordinatorPhone: str
    university: str = Field(..., description="University id")


class DepartmentUpdate(PartialUpdate):
    NULLABLE: ClassVar[FrozenSet[str]] = frozenset({"landLine"})

    name: Optional[str] = None
    startDate: Optional[datetime] = None
    category: Optional[str] = None
    hodName: Optional[str] = None
    honorific: Optional[str] = None
    cnic: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    landLine: Optional[str] = None
    focalPersonName: Optional[str] = None
    focalPersonHonorific: Optional[str] = None
    focalPersonCnic: Optional[str] = None
    focalPersonEmail: Optional[EmailStr] = None
    focalPersonPhone: Optional[str] = None
    CoordinatorName: Optional[str] = None
    CoordinatorHonorific: Optional[str] = None
    CoordinatorCnic: Optional[str] = None
    CoordinatorEmail: Optional[EmailStr] = None
    CoordinatorPhone: Optional[str] = None


# ---------- Academic structure ----------
class Batch(BaseModel):
    batchName: str = Field(..., min_length=1, description="Batch label students carry (e.g., FA21)")
    departmentId: List[str] = Field(..., min_length=1, description="Department ids")


class BatchChanges(BaseModel):
    id: str
    batchName: str = Field(..., min_length=1)
    departmentId: List[str] = Field(..., min_length=1)


class ProgramHeadContact(BaseModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = None


class Program(BaseModel):
    name: str = Field(..., min_length=1)
    departmentId: str = Field(..., description="Department id")
    startDate: datetime
    category: str = Field(..., min_length=1)
    durationYears: int = Field(..., gt=0)
    description: Optional[str] = None
    contactEmail: EmailStr
    contactPhone: Optional[str] = None
    programHead: str = Field(..., min_length=1)
    programHeadContact: Optional[ProgramHeadContact] = None
    programObjectives: List[str] = Field(default_factory=list)


class ProgramUpdate(PartialUpdate):
    NULLABLE: ClassVar[FrozenSet[str]] = frozenset({"description", "contactPhone", "programHeadContact"})

    name: Optional[str] = Field(None, min_length=1)
    startDate: Optional[datetime] = None
    category: Optional[str] = Field(None, min_length=1)
    durationYears: Optional[int] = Field(None, gt=0)
    description: Optional[str] = None
    contactEmail: Optional[EmailStr] = None
    contactPhone: Optional[str] = None
    programHead: Optional[str] = Field(None, min_length=1)
    programHeadContact: Optional[ProgramHeadContact] = None
    programObjectives: Optional[List[str]] = None


class AcademicQualification(BaseModel):
    degreeName: str
    degreeType: str
    fieldOfStudy: str
    degreeAwardingCountry: str
    degreeAwardingInstitute: str
    degreeStartDate: datetime
    degreeEndDate: datetime


class Faculty(BaseModel):
    departmentId: str = Field(..., description="Department id")
    name: str
    honorific: str
    cnic: str
    gender: str
    address: str
    province: str
    city: str
    contractType: str
    academicRank: str
    joiningDate: datetime
    leavingDate: Optional[datetime] = None
    isCoreComputingTeacher: bool
    lastAcademicQualification: AcademicQualification
    email: EmailStr
    university: str = Field(..., description="University id")


class FacultyUpdate(PartialUpdate):
    NULLABLE: ClassVar[FrozenSet[str]] = frozenset({"leavingDate"})

    name: Optional[str] = None
    honorific: Optional[str] = None
    cnic: Optional[str] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    province: Optional[str] = None
    city: Optional[str] = None
    contractType: Optional[str] = None
    academicRank: Optional[str] = None
    joiningDate: Optional[datetime] = None
    leavingDate: Optional[datetime] = None
    isCoreComputingTeacher: Optional[bool] = None
    lastAcademicQualification: Optional[AcademicQualification] = None
    email: Optional[EmailStr] = None


class Student(BaseModel):
    name: str = Field(..., min_length=1)
    department: List[str] = Field(..., min_length=1, description="Department ids")
    batch: str = Field(..., min_length=1)
    section: str = Field(..., min_length=1)
    registrationNumber: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    university: str = Field(..., description="University id")
    # Maintained by the internship workflow only
    didInternship: bool = Field(False)
    cv: Optional[str] = Field(None, description="CV file reference")
    cgpa: Optional[float] = Field(None, ge=0)


class StudentCreate(BaseModel):
    """Client payload for a student; didInternship is always stored as False."""
    name: str = Field(..., min_length=1)
    department: List[str] = Field(..., min_length=1)
    batch: str = Field(..., min_length=1)
    section: str = Field(..., min_length=1)
    registrationNumber: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    university: str
    cv: Optional[str] = None
    cgpa: Optional[float] = Field(None, ge=0)

    def to_student(self) -> Student:
        return Student(**self.model_dump(), didInternship=False)


class StudentUpdate(PartialUpdate):
    NULLABLE: ClassVar[FrozenSet[str]] = frozenset({"cv", "cgpa"})

    name: Optional[str] = Field(None, min_length=1)
    department: Optional[List[str]] = Field(None, min_length=1)
    batch: Optional[str] = Field(None, min_length=1)
    section: Optional[str] = Field(None, min_length=1)
    registrationNumber: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    cv: Optional[str] = None
    cgpa: Optional[float] = Field(None, ge=0)


# ---------- Industry ----------
class Industry(BaseModel):
    name: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    contactEmail: EmailStr


class IndustryUpdate(PartialUpdate):
    name: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1)
    contactEmail: Optional[EmailStr] = None


# ---------- Internships ----------
class Internship(BaseModel):
    title: str = Field(..., min_length=1)
    hostInstitution: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    supervisorName: str = Field(..., min_length=1)
    supervisorEmail: EmailStr
    compensationType: Literal["paid", "unpaid"] = Field("unpaid")
    compensationAmount: Optional[float] = Field(None, ge=0)
    startDate: datetime
    endDate: datetime
    universityId: str = Field(..., description="University id")
    numberOfStudents: int = Field(..., gt=0, description="Seats offered (not enforced on assignment)")

    isApproved: bool = Field(False)
    isComplete: bool = Field(False)
    assignedFaculty: List[str] = Field(default_factory=list, description="Faculty ids")
    assignedStudents: List[str] = Field(default_factory=list, description="Student ids")
    assignedDepartment: List[str] = Field(default_factory=list, description="Department ids")


class InternshipCreate(BaseModel):
    title: str = Field(..., min_length=1)
    hostInstitution: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    supervisorName: str = Field(..., min_length=1)
    supervisorEmail: EmailStr
    compensationType: Literal["paid", "unpaid"] = Field("unpaid")
    compensationAmount: Optional[float] = Field(None, ge=0)
    startDate: datetime
    endDate: datetime
    universityId: str
    numberOfStudents: int = Field(..., gt=0)
    assignedDepartment: List[str] = Field(default_factory=list)

    def to_internship(self) -> Internship:
        data = self.model_dump()
        if data["compensationType"] == "unpaid":
            data["compensationAmount"] = None
        return Internship(**data)


class InternshipUpdate(PartialUpdate):
    """Editable fields; completion and assignment lists go through the workflow."""
    NULLABLE: ClassVar[FrozenSet[str]] = frozenset({"compensationAmount"})

    title: Optional[str] = Field(None, min_length=1)
    hostInstitution: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    supervisorName: Optional[str] = Field(None, min_length=1)
    supervisorEmail: Optional[EmailStr] = None
    compensationType: Optional[Literal["paid", "unpaid"]] = None
    compensationAmount: Optional[float] = Field(None, ge=0)
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    numberOfStudents: Optional[int] = Field(None, gt=0)
    assignedDepartment: Optional[List[str]] = None


class Task(BaseModel):
    internshipId: str
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    deadline: datetime
    marks: float = Field(..., ge=0)
    time: Optional[str] = None
    weightage: float = Field(..., ge=0)
    createdBy: Optional[str] = None


class TaskUpdate(PartialUpdate):
    NULLABLE: ClassVar[FrozenSet[str]] = frozenset({"time"})

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    deadline: Optional[datetime] = None
    marks: Optional[float] = Field(None, ge=0)
    time: Optional[str] = None
    weightage: Optional[float] = Field(None, ge=0)


class Submission(BaseModel):
    taskId: str
    studentId: Optional[str] = None
    # Stored by name as the upload form sends it; studentId is optional
    studentName: str = Field(..., min_length=1)
    fileUrl: str = Field(..., min_length=1)
    submittedAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    grade: Optional[float] = None


# ---------- Request bodies (not collections) ----------
class IdModel(BaseModel):
    id: str


class ApprovalRequest(BaseModel):
    id: str
    isApproved: bool


class AssignStudentRequest(BaseModel):
    studentId: str


class AssignFacultyRequest(BaseModel):
    facultyId: str


class SubmissionRequest(BaseModel):
    studentName: str = Field(..., min_length=1)
    file: str = Field(..., min_length=1, description="Stored file reference")
    studentId: Optional[str] = None


class GradeRequest(BaseModel):
    grade: float


class StudentImportRequest(BaseModel):
    university: str
    students: List[dict] = Field(default_factory=list)


class CvCgpaUpdate(BaseModel):
    email: EmailStr
    cgpa: float = Field(..., ge=0)
    cv: Optional[str] = None


class StudentChanges(StudentUpdate):
    id: str


class TaskChanges(TaskUpdate):
    id: str


class ProgramChanges(ProgramUpdate):
    id: str
