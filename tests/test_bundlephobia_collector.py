"""Tests for BundlePhobiaCollector subprocess handling."""

import asyncio
import sys

import pytest

from bundlestats.collectors.base import CollectorError, ExternalToolError
from bundlestats.collectors.bundlephobia import BundlePhobiaCollector


class TestBuildCommand:
    """Tests for command construction."""

    def test_default_tool(self):
        collector = BundlePhobiaCollector("bundle-phobia")
        assert collector.build_command("react") == ["bundle-phobia", "react", "-j", "-r"]

    def test_string_tool_is_shell_split(self):
        collector = BundlePhobiaCollector("npx bundle-phobia")
        assert collector.build_command("react") == ["npx", "bundle-phobia", "react", "-j", "-r"]

    def test_list_tool_is_used_verbatim(self):
        collector = BundlePhobiaCollector(["/opt/my tools/bundle-phobia"])
        assert collector.build_command("@scope/pkg") == ["/opt/my tools/bundle-phobia", "@scope/pkg", "-j", "-r"]

    def test_availability(self):
        assert BundlePhobiaCollector([sys.executable]).is_available()
        assert not BundlePhobiaCollector("definitely-not-a-real-tool-xyz").is_available()


class TestCollect:
    """Tests for running the tool."""

    def test_returns_stdout(self, fake_tool, make_line):
        fake_tool.set_outputs({"react": make_line("react", "16.13.1") + "\n"})
        collector = BundlePhobiaCollector(fake_tool.command)

        stdout = asyncio.run(collector.collect("react"))

        assert '"version": "16.13.1"' in stdout
        assert fake_tool.calls == [["react", "-j", "-r"]]

    def test_non_zero_exit_raises(self, fake_tool):
        collector = BundlePhobiaCollector(fake_tool.command)

        with pytest.raises(ExternalToolError) as exc_info:
            asyncio.run(collector.collect("missing-package"))

        err = exc_info.value
        assert err.package == "missing-package"
        assert err.returncode == 2
        assert "Unable to find package missing-package" in err.detail

    def test_spawn_failure_raises(self):
        collector = BundlePhobiaCollector("definitely-not-a-real-tool-xyz")

        with pytest.raises(ExternalToolError) as exc_info:
            asyncio.run(collector.collect("react"))

        assert exc_info.value.returncode is None
        assert "spawn failed" in str(exc_info.value)

    def test_external_tool_error_is_collector_error(self):
        assert issubclass(ExternalToolError, CollectorError)
