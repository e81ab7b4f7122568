"""
Test configuration and fixtures

Every test gets a fresh in-memory MongoDB (mongomock) installed as the shared
client, so the application code runs unchanged against it.
"""
import itertools
from types import SimpleNamespace
import os

os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_NAME'] = 'internship_portal_test'

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import services
from main import app
from repositories import universities
from schemas import Department, Faculty, InternshipCreate, StudentCreate, University

_counter = itertools.count(1)


@pytest.fixture
def db():
    database.close_database()
    database.init_database(mongomock.MongoClient())
    yield database.get_db()
    database.close_database()


@pytest.fixture
def client(db):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_university(db):
    def _make(name="COMSATS University"):
        return universities.create(University(
            name=name,
            location="Islamabad",
            address="Park Road, Tarlai Kalan",
            contactEmail="info@example.edu",
        ))
    return _make


@pytest.fixture
def university(make_university):
    return make_university()


def department_payload(university_id, **overrides):
    n = next(_counter)
    payload = {
        "name": f"Computer Science {n}",
        "startDate": "2020-09-01T00:00:00",
        "category": "Computing",
        "hodName": "Dr. Ahmed",
        "cnic": f"35202-0000{n:03d}-1",
        "email": f"hod{n}@example.edu",
        "phone": "0300-1234567",
        "focalPersonName": "Ms. Sara",
        "focalPersonCnic": f"35202-1000{n:03d}-2",
        "focalPersonEmail": f"focal{n}@example.edu",
        "focalPersonPhone": "0300-7654321",
        "CoordinatorName": "Mr. Bilal",
        "CoordinatorCnic": f"35202-2000{n:03d}-3",
        "CoordinatorEmail": f"coordinator{n}@example.edu",
        "CoordinatorPhone": "0300-1112223",
        "university": university_id,
    }
    payload.update(overrides)
    return payload


def student_payload(university_id, department_id, **overrides):
    n = next(_counter)
    payload = {
        "name": f"Student {n}",
        "department": [department_id],
        "batch": "FA21",
        "section": "A",
        "registrationNumber": f"FA21-BCS-{n:03d}",
        "email": f"student{n}@example.edu",
        "university": university_id,
    }
    payload.update(overrides)
    return payload


def faculty_payload(university_id, department_id, **overrides):
    n = next(_counter)
    payload = {
        "departmentId": department_id,
        "name": f"Faculty Member {n}",
        "honorific": "Dr.",
        "cnic": f"35202-3000{n:03d}-4",
        "gender": "Female",
        "address": "Street 5, Model Town",
        "province": "Punjab",
        "city": "Lahore",
        "contractType": "Permanent",
        "academicRank": "Assistant Professor",
        "joiningDate": "2019-02-01T00:00:00",
        "isCoreComputingTeacher": True,
        "lastAcademicQualification": {
            "degreeName": "PhD Computer Science",
            "degreeType": "PhD",
            "fieldOfStudy": "Distributed Systems",
            "degreeAwardingCountry": "Pakistan",
            "degreeAwardingInstitute": "LUMS",
            "degreeStartDate": "2013-09-01T00:00:00",
            "degreeEndDate": "2018-06-30T00:00:00",
        },
        "email": f"faculty{n}@example.edu",
        "university": university_id,
    }
    payload.update(overrides)
    return payload


def internship_payload(university_id, **overrides):
    payload = {
        "title": "Backend Developer Intern",
        "hostInstitution": "Systems Ltd",
        "location": "Lahore",
        "category": "Software",
        "description": "Build REST services",
        "supervisorName": "Usman Ali",
        "supervisorEmail": "usman@systemsltd.com",
        "compensationType": "paid",
        "compensationAmount": 25000,
        "startDate": "2024-06-01T00:00:00",
        "endDate": "2024-08-31T00:00:00",
        "universityId": university_id,
        "numberOfStudents": 3,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def department(university):
    return services.create_department(Department(**department_payload(university["id"])))


@pytest.fixture
def faculty_member(university, department):
    return services.create_faculty(Faculty(**faculty_payload(university["id"], department["id"])))


@pytest.fixture
def make_student(university, department):
    def _make(**overrides):
        payload = student_payload(university["id"], department["id"], **overrides)
        return services.create_student(StudentCreate(**payload))
    return _make


@pytest.fixture
def make_internship(university):
    def _make(**overrides):
        payload = internship_payload(university["id"], **overrides)
        return services.create_internship(InternshipCreate(**payload))
    return _make


@pytest.fixture
def payloads():
    return SimpleNamespace(
        department=department_payload,
        student=student_payload,
        faculty=faculty_payload,
        internship=internship_payload,
    )
