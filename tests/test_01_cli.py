"""CLI tests for the blockgen entry point.

Test cases live in 01_cli/*.tests files. Format:

    === test name
    args: --target php --stop-at load
    [{"type": "text_print", ...}]
    (stdin for the compiler)
    ---
    exit: 0
    stderr: error: some message
    stdout-contains: echo 'hi';
    stdout-not-contains: <?php
    stdout-empty: true
    stderr-empty: true
    exit-not: 2
    ---

Special directives in the input section:
    args:           CLI arguments (first line, required)
    stdin-bytes:    hex-encoded raw bytes instead of text (e.g. "ff fe")

Assertion values wrapped in double quotes keep their surrounding whitespace.
"""

import subprocess
import sys
from pathlib import Path

import pytest

CLI_DIR = Path(__file__).parent / "01_cli"
ROOT_DIR = Path(__file__).parent.parent


def parse_cli_test_file(path: Path) -> list[tuple[str, dict]]:
    """Parse a .tests file into (name, case) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, dict]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            result.append((test_name, _parse_case(input_lines, expected_lines)))
        else:
            i += 1
    return result


def _value(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        return text[1:-1]
    return text


def _parse_case(input_lines: list[str], expected_lines: list[str]) -> dict:
    """Parse input + expected lines into a test case dict."""
    case: dict = {
        "args": [],
        "stdin": None,
        "stdin_bytes": None,
        "assertions": [],
    }
    body_start = 0
    if input_lines and input_lines[0].startswith("args:"):
        args_str = input_lines[0][5:].strip()
        case["args"] = args_str.split() if args_str else []
        body_start = 1
    remaining = input_lines[body_start:]
    if remaining and remaining[0].startswith("stdin-bytes:"):
        hex_str = remaining[0][len("stdin-bytes:") :].strip()
        case["stdin_bytes"] = bytes.fromhex(hex_str)
    else:
        case["stdin"] = "\n".join(remaining)
    for line in expected_lines:
        if not line.strip():
            continue
        directive, _, value = line.partition(":")
        directive = directive.strip()
        if directive in ("exit", "exit-not"):
            case["assertions"].append((directive, int(value.strip())))
        elif directive in ("stderr-empty", "stdout-empty"):
            case["assertions"].append((directive, None))
        else:
            case["assertions"].append((directive, _value(value)))
    return case


def discover_cli_tests() -> list[tuple[str, dict]]:
    """Find all CLI tests across .tests files."""
    results = []
    for test_file in sorted(CLI_DIR.glob("*.tests")):
        for name, case in parse_cli_test_file(test_file):
            results.append((f"{test_file.stem}/{name}", case))
    return results


def run_cli(case: dict) -> subprocess.CompletedProcess[bytes]:
    """Run the blockgen CLI from a test case."""
    cmd = [sys.executable, "-m", "blockgen.blockgen", *case["args"]]
    if case["stdin_bytes"] is not None:
        stdin_data = case["stdin_bytes"]
    elif case["stdin"] is not None:
        stdin_data = case["stdin"].encode()
    else:
        stdin_data = b""
    return subprocess.run(cmd, input=stdin_data, capture_output=True, cwd=ROOT_DIR)


def check_assertions(
    result: subprocess.CompletedProcess[bytes], assertions: list[tuple]
) -> None:
    """Check all assertions against a CLI result."""
    stdout = result.stdout.decode(errors="replace")
    stderr = result.stderr.decode(errors="replace")
    for kind, value in assertions:
        if kind == "exit":
            assert result.returncode == value, (
                f"expected exit {value}, got {result.returncode}\nstderr: {stderr}"
            )
        elif kind == "exit-not":
            assert result.returncode != value, (
                f"expected exit != {value}, got {result.returncode}"
            )
        elif kind == "stderr":
            actual = stderr.rstrip("\n")
            assert actual == value, f"expected stderr {value!r}, got {actual!r}"
        elif kind == "stderr-contains":
            assert value in stderr, f"expected stderr to contain {value!r}, got {stderr!r}"
        elif kind == "stderr-empty":
            assert result.stderr == b"", f"expected empty stderr, got {result.stderr!r}"
        elif kind == "stdout-contains":
            assert value in stdout, f"expected stdout to contain {value!r}, got {stdout!r}"
        elif kind == "stdout-not-contains":
            assert value not in stdout, f"expected stdout without {value!r}, got {stdout!r}"
        elif kind == "stdout-empty":
            assert result.stdout == b"", f"expected empty stdout, got {result.stdout[:200]!r}"
        else:
            pytest.fail("unknown assertion directive " + repr(kind))


def pytest_generate_tests(metafunc):
    """Parametrize test_cli over all .tests files."""
    if "cli_case" in metafunc.fixturenames:
        params = [pytest.param(case, id=test_id) for test_id, case in discover_cli_tests()]
        metafunc.parametrize("cli_case", params)


def test_cli(cli_case: dict) -> None:
    """Run a single CLI test case from .tests file."""
    result = run_cli(cli_case)
    check_assertions(result, cli_case["assertions"])
