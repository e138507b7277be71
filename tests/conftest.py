"""Shared fixtures: a stand-in for the bundle-phobia CLI."""

import json
import shlex
import sys

import pytest

FAKE_TOOL = """\
import json
import sys

with open({outputs_path!r}) as f:
    outputs = json.load(f)

with open({calls_path!r}, "a") as f:
    f.write(json.dumps(sys.argv[1:]) + "\\n")

name = sys.argv[1]
if name not in outputs:
    sys.stderr.write("Unable to find package " + name)
    sys.exit(2)
sys.stdout.write(outputs[name])
"""


class FakeTool:
    """A python script that prints canned bundle-phobia output per package."""

    def __init__(self, tmp_path):
        self.outputs_path = tmp_path / "outputs.json"
        self.calls_path = tmp_path / "calls.jsonl"
        self.script = tmp_path / "fake_bundle_phobia.py"
        self.outputs = {}
        self.script.write_text(
            FAKE_TOOL.format(outputs_path=str(self.outputs_path), calls_path=str(self.calls_path))
        )
        self.set_outputs({})

    def set_outputs(self, outputs):
        self.outputs = outputs
        self.outputs_path.write_text(json.dumps(outputs))

    @property
    def command(self):
        return shlex.join([sys.executable, str(self.script)])

    @property
    def calls(self):
        if not self.calls_path.exists():
            return []
        return [json.loads(line) for line in self.calls_path.read_text().splitlines()]


@pytest.fixture
def fake_tool(tmp_path):
    return FakeTool(tmp_path)


def record_line(name, version, gzip=1000):
    return json.dumps({
        "name": name,
        "version": version,
        "size": gzip * 3,
        "gzip": gzip,
        "description": f"{name} description",
        "repository": f"https://github.com/example/{name}",
    })


@pytest.fixture
def make_line():
    return record_line
