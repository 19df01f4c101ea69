import os
import sys

import pytest

# Ensure project root is on path for direct module imports when running under various runners
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from embedquery.registry import DictSchemaRegistry


SCHEMA = {
    "Post": {
        "collection": "posts",
        "fields": {
            "title": {"type": "plain"},
            "tags": {"type": "plain"},
            "author": {"type": "reference", "ref": "User"},
            "meta.reviewer": {"type": "reference", "ref": "User"},
            "meta.views": {"type": "plain"},
            "editor": {"type": "reference", "ref": "Ghost"},
            "legacyRef": {"type": "reference"},
        },
    },
    "User": {
        "collection": "users",
        "fields": {
            "name": {"type": "plain"},
            "company": {"type": "reference", "ref": "Company"},
            "bestFriend": {"type": "reference", "ref": "User"},
        },
    },
    "Company": {
        "collection": "companies",
        "fields": {
            "name": {"type": "plain"},
            "country": {"type": "plain"},
        },
    },
    "Student": {
        "collection": "students",
        "fields": {"name": {"type": "plain"}},
    },
    "Teacher": {
        "collection": "teachers",
        "fields": {"name": {"type": "plain"}},
    },
    "Course": {
        "collection": "courses",
        "fields": {
            "title": {"type": "plain"},
            "teacher": {"type": "reference", "ref": "Teacher"},
        },
    },
    "Enrollment": {
        "collection": "enrollments",
        "fields": {
            "student": {"type": "reference", "ref": "Student"},
            "course": {"type": "reference", "ref": "Course"},
            "grade": {"type": "plain"},
        },
    },
}

OWNER_ID = "507f1f77bcf86cd799439011"


@pytest.fixture
def registry():
    return DictSchemaRegistry(SCHEMA)


@pytest.fixture
def enrollment_link():
    return {
        "linkingCollection": "Enrollment",
        "fieldStoringChild": "course",
        "ownerField": "student",
    }
