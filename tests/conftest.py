import pytest


@pytest.fixture
def fiddle_with_tests():
    """A fiddle whose single request declares a test expectation."""
    return {
        "id": "fiddle-1",
        "type": "vcl",
        "origins": ["https://example.com"],
        "src": {},
        "requests": [
            {"method": "GET", "path": "/", "tests": ["clientFetch.status is 200"]},
        ],
    }


@pytest.fixture
def fiddle_without_tests():
    return {
        "id": "fiddle-2",
        "type": "vcl",
        "origins": ["https://example.com"],
        "src": {},
        "requests": [
            {"method": "GET", "path": "/", "tests": ""},
        ],
    }


@pytest.fixture
def empty_result():
    return {"clientFetches": {}}


@pytest.fixture
def tested_result():
    return {
        "clientFetches": {
            "r1": {
                "req": "GET / HTTP/1.1\nHost: example.com",
                "tests": [
                    {"testExpr": "clientFetch.status is 200", "pass": True, "actual": 200, "expected": 200, "detail": ""},
                ],
            }
        }
    }
