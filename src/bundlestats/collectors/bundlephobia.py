"""bundle-phobia CLI collector - runs the tool and decodes its JSON lines."""

import asyncio
import json
import logging
import os
import re
import shlex
import shutil
from dataclasses import dataclass, field
from typing import Any, Union

from bundlestats.collectors.base import BaseCollector, ExternalToolError

logger = logging.getLogger(__name__)

DEFAULT_TOOL = os.getenv("BUNDLESTATS_TOOL", "bundle-phobia")

REQUIRED_FIELDS = ("name", "size", "gzip", "description", "repository", "version")

# bundle-phobia sometimes reports an aggregate line such as "12 packages"
# in place of a version string.
_AGGREGATE_VERSION_RE = re.compile(r"^[0-9]+ packages$")


@dataclass
class PackageRecord:
    """Size metadata for one published version of a package."""

    name: str
    version: str
    gzip: Any
    description: str
    repository: str

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "gzip": self.gzip,
            "description": self.description,
            "repository": self.repository,
        }


@dataclass
class RecordRejected:
    """A line of tool output that did not yield a record."""

    reason: str
    line: str
    malformed: bool = False


@dataclass
class ParsedOutput:
    """Decoded tool output, in the order the tool printed it."""

    records: list[PackageRecord] = field(default_factory=list)
    rejected: list[RecordRejected] = field(default_factory=list)

    @property
    def has_parse_error(self) -> bool:
        return any(r.malformed for r in self.rejected)


def validate_record(candidate: Any) -> bool:
    """Return True if a decoded JSON value is a usable bundle-phobia record.

    All of the required fields must be present, and the version must not
    look like the "<N> packages" aggregate the tool emits for multi-package
    summaries.
    """
    if not isinstance(candidate, dict):
        return False
    if not all(key in candidate for key in REQUIRED_FIELDS):
        return False
    version = candidate["version"]
    return isinstance(version, str) and not _AGGREGATE_VERSION_RE.match(version)


def parse_line(line: str) -> Union[PackageRecord, RecordRejected]:
    """Decode one line of tool output into a record or a rejection."""
    try:
        candidate = json.loads(line)
    except json.JSONDecodeError as e:
        return RecordRejected(reason=f"invalid JSON: {e}", line=line, malformed=True)

    if not validate_record(candidate):
        return RecordRejected(reason="not a package record", line=line)

    return PackageRecord(
        name=candidate["name"],
        version=candidate["version"],
        gzip=candidate["gzip"],
        description=candidate["description"],
        repository=candidate["repository"],
    )


def parse_output(stdout: str) -> ParsedOutput:
    """Decode newline-delimited JSON output, skipping blank lines."""
    parsed = ParsedOutput()
    for line in stdout.split("\n"):
        if not line.strip():
            continue
        result = parse_line(line)
        if isinstance(result, PackageRecord):
            parsed.records.append(result)
        else:
            if result.malformed:
                logger.warning(f"Failed to parse JSON line: {line[:80]!r}")
            else:
                logger.debug(f"Dropping non-record line: {line[:80]!r}")
            parsed.rejected.append(result)
    return parsed


class BundlePhobiaCollector(BaseCollector):
    """Collector that shells out to the bundle-phobia CLI."""

    # -j: one JSON object per line, -r: include the repository field
    TOOL_ARGS = ("-j", "-r")

    def __init__(self, tool: Union[str, list[str], None] = None):
        """
        Initialize the collector.

        Args:
            tool: Command used to invoke bundle-phobia. A string is split
                with shlex. Defaults to BUNDLESTATS_TOOL or "bundle-phobia".
        """
        tool = tool or DEFAULT_TOOL
        self.command = shlex.split(tool) if isinstance(tool, str) else list(tool)

    def is_available(self) -> bool:
        """Available when the tool executable can be found."""
        return bool(self.command) and shutil.which(self.command[0]) is not None

    def build_command(self, package_name: str) -> list[str]:
        return [*self.command, package_name, *self.TOOL_ARGS]

    async def collect(self, package_name: str) -> str:
        """
        Run bundle-phobia for a package and wait for it to exit.

        Args:
            package_name: npm package name

        Returns:
            The tool's standard output

        Raises:
            ExternalToolError: if the tool cannot be started or exits non-zero
        """
        cmd = self.build_command(package_name)
        logger.debug(f"Running: {shlex.join(cmd)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExternalToolError(package_name, str(e)) from e

        stdout, stderr = await proc.communicate()

        if proc.returncode != 0:
            detail = stderr.decode(errors="replace").strip() or "no output on stderr"
            raise ExternalToolError(package_name, detail, returncode=proc.returncode)

        return stdout.decode(errors="replace")
