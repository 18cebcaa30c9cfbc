"""Tests for the PolicyGate."""

import unittest
from pathlib import Path

from fs_agent._dispatch import PolicyGate
from fs_agent.models import Project, RequestIdentity

from .fakes import FakeGateway, RecordingSink, approving_result, rejecting_result

IDENTITY = RequestIdentity(org_token="org", product="prod")
PROJECTS = [Project(name="my-project")]


class TestPolicyGate(unittest.TestCase):
    def test_compliant(self):
        sink = RecordingSink()
        gate = PolicyGate(sink, Path("out"))
        with self.assertLogs("fs_agent", level="INFO") as logs:
            compliant = gate.evaluate(FakeGateway(compliance=approving_result()), IDENTITY, PROJECTS)

        self.assertTrue(compliant)
        self.assertEqual(len(sink.rendered), 1)
        self.assertEqual(gate.report_files, [Path("out") / "report.out"])
        self.assertIsNotNone(gate.last_result)
        self.assertTrue(any("All dependencies conform" in line for line in logs.output))
        self.assertTrue(any("Policies report generated successfully" in line for line in logs.output))

    def test_rejection(self):
        sink = RecordingSink()
        gate = PolicyGate(sink, Path("out"))
        with self.assertLogs("fs_agent", level="INFO") as logs:
            compliant = gate.evaluate(FakeGateway(compliance=rejecting_result()), IDENTITY, PROJECTS)

        self.assertFalse(compliant)
        self.assertEqual(len(sink.rendered), 1)
        self.assertTrue(any("did not conform" in line for line in logs.output))
        self.assertTrue(any("=== UPDATE ABORTED ===" in line for line in logs.output))

    def test_report_failure_is_logged(self):
        gate = PolicyGate(RecordingSink(fail=True), Path("out"))
        with self.assertLogs("fs_agent", level="ERROR") as logs:
            compliant = gate.evaluate(FakeGateway(compliance=rejecting_result()), IDENTITY, PROJECTS)

        self.assertFalse(compliant)
        self.assertEqual(gate.report_files, [])
        self.assertIn("Error generating check policies report", logs.output[0])

    def test_force_check_all_forwarded(self):
        gateway = FakeGateway()
        PolicyGate(RecordingSink(), Path("out")).evaluate(gateway, IDENTITY, PROJECTS, force_check_all=True)
        self.assertTrue(gateway.force_check_all)


if __name__ == "__main__":
    unittest.main()
