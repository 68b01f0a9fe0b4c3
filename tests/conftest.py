"""Shared fixtures for the cpan-audit test suite."""

import json

import pytest

from cpan_audit.core.matcher import RangeMatcher
from cpan_audit.db.index import AdvisoryIndex

SAMPLE_DATABASE = {
    "dists": {
        "Foo": {
            "advisories": [
                {
                    "id": "CPANSA-Foo-2017-001",
                    "description": "Remote code execution in Foo::Parser.",
                    "affected_versions": ">=1.0,<2.0",
                    "references": ["https://example.org/foo-2017-001"],
                },
                {
                    "id": "CPANSA-Foo-2019-002",
                    "description": "Denial of service via deep recursion.",
                    "affected_versions": ">=1.0",
                    "fixed_versions": ">=1.5",
                },
            ]
        },
        "Bar-Baz": {
            "advisories": [
                {
                    "id": "CPANSA-Bar-Baz-2020-001",
                    "description": "Heap overflow in the XS decoder.",
                    "affected_versions": "<0.24_01",
                }
            ]
        },
        "Clean-Dist": {"advisories": []},
    },
    "module2dist": {
        "Foo": "Foo",
        "Foo::Parser": "Foo",
        "Bar::Baz": "Bar-Baz",
        "Clean::Dist": "Clean-Dist",
        "Orphan::Module": "Gone-Dist",
    },
}


@pytest.fixture
def sample_data():
    """A fresh copy of the sample advisory database."""
    return json.loads(json.dumps(SAMPLE_DATABASE))


@pytest.fixture
def index(sample_data):
    return AdvisoryIndex.from_mapping(sample_data)


@pytest.fixture
def matcher(index):
    return RangeMatcher(index)


@pytest.fixture
def database_file(tmp_path, sample_data):
    """The sample database written to a JSON file."""
    path = tmp_path / "cpansa.json"
    path.write_text(json.dumps(sample_data), encoding="utf-8")
    return path
