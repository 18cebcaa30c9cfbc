"""Tests for the policy report and offline request sinks."""

import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from fs_agent._reports import (
    HTML_REPORT_NAME,
    JSON_REPORT_NAME,
    OFFLINE_REQUEST_FILE,
    REPORT_DIR_NAME,
    OfflineUpdateRequest,
    PolicyCheckReport,
    build_rejection_summary,
    decode_payload,
    encode_payload,
)
from fs_agent.exceptions import ReportGenerationError
from fs_agent.models import ComplianceResult, OfflinePayload, PolicyCheckNode, Project

from .fakes import approving_result, rejecting_result


def make_payload() -> OfflinePayload:
    return OfflinePayload(
        agent="fs-agent",
        agent_version="1.0.0",
        org_token="org",
        product="prod",
        product_version="1",
        time_stamp=1700000000000,
        projects=[Project(name="my-project", version="1.0")],
    )


class TestRejectionSummary(unittest.TestCase):
    def test_groups_by_policy(self):
        policy = {"displayName": "No GPL", "actionType": "Reject"}
        lib = PolicyCheckNode(resource={"displayName": "gpl.jar", "sha1": "1" * 40}, policy=policy)
        result = ComplianceResult(
            organization="Acme",
            new_projects={"a": [lib]},
            existing_projects={"b": [PolicyCheckNode(resource={"displayName": "root"}, children=[lib])]},
        )
        summary = build_rejection_summary(result)

        self.assertTrue(summary["hasRejections"])
        self.assertEqual(summary["summary"], {"totalRejectedLibraries": 1, "totalPolicies": 1})
        library = summary["rejectingPolicies"][0]["rejectedLibraries"][0]
        self.assertEqual(library["name"], "gpl.jar")
        self.assertEqual(library["projects"], ["a", "b"])

    def test_no_rejections(self):
        summary = build_rejection_summary(approving_result())
        self.assertFalse(summary["hasRejections"])
        self.assertEqual(summary["rejectingPolicies"], [])


class TestPolicyCheckReport(unittest.TestCase):
    def test_writes_html_and_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            files = PolicyCheckReport().render(rejecting_result(), Path(tmpdir))

            report_dir = Path(tmpdir) / REPORT_DIR_NAME
            self.assertEqual(files, [report_dir / HTML_REPORT_NAME, report_dir / JSON_REPORT_NAME])
            html = (report_dir / HTML_REPORT_NAME).read_text(encoding="utf-8")
            self.assertIn("<html", html.lower())
            self.assertIn("evil-lib-1.0.jar", html)
            data = json.loads((report_dir / JSON_REPORT_NAME).read_text(encoding="utf-8"))
            self.assertEqual(data["organization"], "Acme")
            self.assertTrue(data["hasRejections"])

    def test_write_failure(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with patch("pathlib.Path.write_text", side_effect=OSError("read-only")):
                with self.assertRaises(ReportGenerationError):
                    PolicyCheckReport().render(rejecting_result(), Path(tmpdir))


class TestOfflineUpdateRequest(unittest.TestCase):
    def test_plain_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            files = OfflineUpdateRequest().render(make_payload(), Path(tmpdir))
            self.assertEqual(files, [Path(tmpdir) / OFFLINE_REQUEST_FILE])
            data = json.loads(files[0].read_text(encoding="utf-8"))
            self.assertEqual(data["type"], "UPDATE")
            self.assertEqual(data["projects"][0]["coordinates"]["artifactId"], "my-project")

    def test_zipped(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            files = OfflineUpdateRequest().render(make_payload(), Path(tmpdir), zip=True)
            text = files[0].read_text(encoding="utf-8")
            self.assertNotIn("{", text)
            data = json.loads(decode_payload(text, compress=True))
            self.assertEqual(data["orgToken"], "org")

    def test_pretty_json(self):
        text = encode_payload(make_payload(), pretty_json=True)
        self.assertIn('\n    "type": "UPDATE"', text)

    def test_creates_output_dir(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            target = Path(tmpdir) / "nested" / "dir"
            files = OfflineUpdateRequest().render(make_payload(), target)
            self.assertTrue(files[0].exists())

    def test_write_failure(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with patch("pathlib.Path.write_text", side_effect=OSError("disk full")):
                with self.assertRaises(ReportGenerationError):
                    OfflineUpdateRequest().render(make_payload(), Path(tmpdir))


if __name__ == "__main__":
    unittest.main()
