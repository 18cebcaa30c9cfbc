"""Tests for configuration loading and validation."""

import tempfile
import unittest
from pathlib import Path

import pytest

from fs_agent._dispatch import ProjectAssembler
from fs_agent.config import (
    DEFAULT_CONNECTION_TIMEOUT_MINUTES,
    DEFAULT_SERVICE_URL,
    RunConfiguration,
    build_config,
    env_key,
    load_config,
    parse_flag,
    read_env_properties,
    read_properties_file,
    split_copyrights,
    split_patterns,
)
from fs_agent.exceptions import ValidationError

BASIC_PROPERTIES = """\
# Organization settings
apiKey=org-token-123
projectName=my-project
projectVersion=1.2.3
productName=my-product
productVersion=2.0
includes=**/*.jar **/*.dll
excludes=**/*sources.jar
! alternative comment style
checkPolicies=true
"""


def write_config(content: str) -> str:
    handle = tempfile.NamedTemporaryFile("w", suffix=".config", delete=False, encoding="utf-8")
    handle.write(content)
    handle.close()
    return handle.name


class TestRunConfigurationValidation(unittest.TestCase):
    """Test cases for RunConfiguration.validate()."""

    def test_missing_org_token(self):
        config = RunConfiguration(org_token="", project_name="p")
        with self.assertRaises(ValidationError) as cm:
            config.validate()
        self.assertIn("apiKey", str(cm.exception))

    def test_missing_project_identity(self):
        config = RunConfiguration(org_token="org")
        with self.assertRaises(ValidationError) as cm:
            config.validate()
        self.assertIn("Could not retrieve properties projectName and projectToken", str(cm.exception))

    def test_both_project_identities(self):
        config = RunConfiguration(org_token="org", project_name="p", project_token="t")
        with self.assertRaises(ValidationError) as cm:
            config.validate()
        self.assertIn("Please choose projectName or projectToken", str(cm.exception))

    def test_blank_project_token_counts_as_unset(self):
        config = RunConfiguration(org_token="org", project_token="  ", project_name="my-project")
        config.validate()
        project = ProjectAssembler().assemble(config, [])
        self.assertEqual(project.name, "my-project")
        self.assertIsNone(project.token)

    def test_blank_project_name_and_token(self):
        config = RunConfiguration(org_token="org", project_token=" ", project_name="\t")
        with self.assertRaises(ValidationError) as cm:
            config.validate()
        self.assertIn("Could not retrieve properties", str(cm.exception))

    def test_non_positive_timeout(self):
        config = RunConfiguration(org_token="org", project_name="p", connection_timeout_minutes=0)
        with self.assertRaises(ValidationError):
            config.validate()

    def test_negative_archive_depth(self):
        config = RunConfiguration(org_token="org", project_name="p", archive_extraction_depth=-1)
        with self.assertRaises(ValidationError):
            config.validate()

    def test_proxy_host_without_port(self):
        config = RunConfiguration(org_token="org", project_name="p", proxy_host="proxy.local")
        with self.assertRaises(ValidationError) as cm:
            config.validate()
        self.assertIn("proxy.port", str(cm.exception))

    def test_invalid_service_url_scheme(self):
        config = RunConfiguration(org_token="org", project_name="p", service_url="ftp://example.com/agent")
        with self.assertRaises(ValidationError) as cm:
            config.validate()
        self.assertIn("http:// or https://", str(cm.exception))

    def test_service_url_trailing_slash_removed(self):
        config = RunConfiguration(org_token="org", project_name="p", service_url="https://example.com/agent/")
        config.validate()
        self.assertEqual(config.service_url, "https://example.com/agent")

    def test_product_version_ignored_with_product_token(self):
        config = RunConfiguration(
            org_token="org", project_name="p", product_token="prod-tok", product_name="n", product_version="1"
        )
        self.assertEqual(config.product, "prod-tok")
        self.assertIsNone(config.effective_product_version)

    def test_product_name_and_version(self):
        config = RunConfiguration(org_token="org", project_name="p", product_name="n", product_version="1")
        self.assertEqual(config.product, "n")
        self.assertEqual(config.effective_product_version, "1")

    def test_timeout_in_seconds(self):
        config = RunConfiguration(org_token="org", project_name="p", connection_timeout_minutes=2)
        self.assertEqual(config.connection_timeout_seconds, 120)


class TestParsers:
    """Tests for the property value parsers."""

    @pytest.mark.parametrize("value", ["true", "TRUE", "y", "Yes", "1", "on"])
    def test_parse_flag_true(self, value):
        assert parse_flag("offline", value) is True

    @pytest.mark.parametrize("value", ["false", "N", "no", "0", "off"])
    def test_parse_flag_false(self, value):
        assert parse_flag("offline", value) is False

    def test_parse_flag_blank_uses_default(self):
        assert parse_flag("followSymbolicLinks", "", default=True) is True
        assert parse_flag("followSymbolicLinks", None) is False

    def test_parse_flag_garbage(self):
        with pytest.raises(ValidationError, match="Bad offline. Received 'maybe', required true/false or y/n"):
            parse_flag("offline", "maybe")

    def test_split_patterns(self):
        assert split_patterns("**/*.jar, **/*.dll;lib/*  *.so") == ["**/*.jar", "**/*.dll", "lib/*", "*.so"]
        assert split_patterns("") == []

    def test_split_copyrights(self):
        assert split_copyrights("Acme Corp,Example Inc") == ["Acme Corp", "Example Inc"]
        assert split_copyrights(None) == []

    def test_env_key(self):
        assert env_key("apiKey") == "WSS_APIKEY"
        assert env_key("proxy.host") == "WSS_PROXY_HOST"
        assert env_key("case.sensitive.glob") == "WSS_CASE_SENSITIVE_GLOB"


class TestReadPropertiesFile(unittest.TestCase):
    """Tests for properties file parsing."""

    def test_reads_keys_preserving_case(self):
        path = write_config(BASIC_PROPERTIES)
        try:
            properties = read_properties_file(path)
        finally:
            Path(path).unlink()
        self.assertEqual(properties["apiKey"], "org-token-123")
        self.assertEqual(properties["projectName"], "my-project")
        self.assertEqual(properties["includes"], "**/*.jar **/*.dll")
        self.assertNotIn("apikey", properties)

    def test_missing_file(self):
        with self.assertRaises(ValidationError) as cm:
            read_properties_file("/nonexistent/whitesource-fs-agent.config")
        self.assertIn("Failed to open", str(cm.exception))


class TestBuildConfig(unittest.TestCase):
    """Tests for build_config defaults and conversion."""

    def test_defaults(self):
        config = build_config({"apiKey": "org", "projectName": "p"})
        self.assertEqual(config.service_url, DEFAULT_SERVICE_URL)
        self.assertEqual(config.connection_timeout_minutes, DEFAULT_CONNECTION_TIMEOUT_MINUTES)
        self.assertEqual(config.archive_extraction_depth, 0)
        self.assertTrue(config.follow_symlinks)
        self.assertFalse(config.offline)
        self.assertFalse(config.check_policies)
        self.assertEqual(config.includes, [])
        self.assertEqual(config.report_dir, ".")

    def test_bad_integer(self):
        with self.assertRaises(ValidationError) as cm:
            build_config({"apiKey": "org", "projectName": "p", "archiveExtractionDepth": "deep"})
        self.assertIn("archiveExtractionDepth", str(cm.exception))

    def test_proxy_settings(self):
        config = build_config(
            {"apiKey": "org", "projectName": "p", "proxy.host": "proxy.local", "proxy.port": "3128"}
        )
        self.assertEqual(config.proxy_host, "proxy.local")
        self.assertEqual(config.proxy_port, 3128)


class TestLoadConfig(unittest.TestCase):
    """Tests for layered configuration loading."""

    def setUp(self):
        self.path = write_config(BASIC_PROPERTIES)

    def tearDown(self):
        Path(self.path).unlink()

    def test_file_only(self):
        config = load_config(self.path, environ={})
        self.assertEqual(config.org_token, "org-token-123")
        self.assertEqual(config.project_name, "my-project")
        self.assertEqual(config.project_version, "1.2.3")
        self.assertEqual(config.includes, ["**/*.jar", "**/*.dll"])
        self.assertEqual(config.excludes, ["**/*sources.jar"])
        self.assertTrue(config.check_policies)

    def test_environment_overrides_file(self):
        config = load_config(self.path, environ={"WSS_APIKEY": "env-token", "WSS_OFFLINE": "true"})
        self.assertEqual(config.org_token, "env-token")
        self.assertTrue(config.offline)

    def test_overrides_win_and_none_is_ignored(self):
        config = load_config(
            self.path,
            overrides={"apiKey": "cli-token", "projectVersion": None},
            environ={"WSS_APIKEY": "env-token"},
        )
        self.assertEqual(config.org_token, "cli-token")
        self.assertEqual(config.project_version, "1.2.3")

    def test_override_causing_conflict(self):
        with self.assertRaises(ValidationError) as cm:
            load_config(self.path, overrides={"projectToken": "tok"}, environ={})
        self.assertIn("Please choose projectName or projectToken", str(cm.exception))

    def test_read_env_properties_ignores_empty(self):
        found = read_env_properties({"WSS_APIKEY": "", "WSS_PROXY_HOST": "proxy", "OTHER": "x"})
        self.assertEqual(found, {"proxy.host": "proxy"})


if __name__ == "__main__":
    unittest.main()
