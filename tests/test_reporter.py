"""Tests for the update result summary."""

from fs_agent._dispatch import NO_NEW_PROJECTS, NO_UPDATED_PROJECTS, summarize
from fs_agent.models import UpdateResult


def test_summary_with_projects():
    result = UpdateResult(
        organization="Acme",
        created_projects=["new-b", "new-a"],
        updated_projects=["old"],
        request_token="req-42",
    )
    assert summarize(result) == (
        "Inventory update results for Acme\n"
        "Newly created projects:\n"
        "new-b\n"
        "new-a\n"
        "Updated projects:\n"
        "old\n"
        "Support token: req-42\n"
    )


def test_summary_without_projects():
    text = summarize(UpdateResult(organization="Acme"))
    lines = text.splitlines()
    assert lines == ["Inventory update results for Acme", NO_NEW_PROJECTS, NO_UPDATED_PROJECTS]
    assert "Support token" not in text


def test_summary_from_service_payload():
    result = UpdateResult.from_dict(
        {"organization": "Acme", "createdProjects": ["a"], "updatedProjects": [], "requestToken": None}
    )
    text = summarize(result)
    assert "Newly created projects:\na\n" in text
    assert NO_UPDATED_PROJECTS in text


def test_updated_project_listed_under_heading():
    text = summarize(UpdateResult(organization="Acme", updated_projects=["proj-a"]))
    assert "No new projects found." in text
    assert "Updated projects:\nproj-a\n" in text
