"""
Stylesheet Target & Results Writer Tests
========================================
File-backed Collector/Applier and the session summary file.
"""
import asyncio
import json
import os
import pytest

from stylepilot.core.errors import CancellationError, CollectionError
from stylepilot.models.processing_result import ProcessingResult
from stylepilot.parser.artifact_cleaner import (
    clean_artifact_response,
    count_rules,
    validate_stylesheet_structure,
)
from stylepilot.services.results_writer import ResultsWriter
from stylepilot.services.run_log import RunLog
from stylepilot.services.stylesheet_target import (
    StylesheetFileTarget,
    declared_style_map,
    parse_markup,
)
from stylepilot.state.cancellation import CancellationToken
from stylepilot.state.processing_context import ProcessingContext

_MARKUP = """
<html>
  <head><title>Demo</title><style>.x { color: red; }</style></head>
  <body>
    <header class="site-header" id="top"><h1 class="title">Welcome</h1></header>
    <main class="content">
      <p class="lead">Hello <b>world</b></p>
      <img class="hero" src="a.png">
      <script>console.log("ignored")</script>
    </main>
  </body>
</html>
"""


def _make_target(tmp_path, markup=True, screenshot=True):
    markup_path = None
    screenshot_path = None
    if markup:
        markup_path = tmp_path / "page.html"
        markup_path.write_text(_MARKUP, encoding="utf-8")
    if screenshot:
        screenshot_path = tmp_path / "page.png"
        screenshot_path.write_bytes(b"\x89PNG-capture")
    return StylesheetFileTarget(
        stylesheet_path=str(tmp_path / "out" / "generated.css"),
        markup_path=str(markup_path) if markup_path else None,
        screenshot_path=str(screenshot_path) if screenshot_path else None,
    )


# ===================================================================
# Helpers
# ===================================================================
def test_parse_markup_builds_tree():
    tree = parse_markup(_MARKUP)
    html = tree["children"][0]
    body = html["children"][0]
    header, main = body["children"]

    assert header["classes"] == ["site-header"]
    assert header["attributes"] == {"id": "top"}
    assert header["children"][0]["text"] == "Welcome"
    assert [c["tag"] for c in main["children"]] == ["p", "img"]
    assert main["children"][0]["text"] == "Hello"
    assert main["children"][1]["children"] == []


def test_declared_style_map():
    styles = declared_style_map("/* c */ .a, .b { color: red; margin : 0 } @media (max-width: 10px) { .a { x: y } }")
    assert styles[".a"]["color"] == "red"
    assert styles[".b"]["margin"] == "0"


def test_stylesheet_structure_checks():
    assert validate_stylesheet_structure(".a { color: red; }") == (True, [])
    ok, errors = validate_stylesheet_structure("color: red;")
    assert ok is False and "missing braces" in errors[0]
    ok, errors = validate_stylesheet_structure(".a { color: red; ")
    assert ok is False
    assert count_rules(".a{} .b{} /* } */") == 2
    assert clean_artifact_response("```CSS\n.a{}\n```") == ".a{}"


# ===================================================================
# Collect / apply
# ===================================================================
def test_collect_reads_markup_and_capture(tmp_path):
    target = _make_target(tmp_path)
    snapshot = asyncio.run(target.collect(CancellationToken()))

    assert snapshot.current_artifact_text == ""
    assert snapshot.visual == b"\x89PNG-capture"
    assert snapshot.visual_mime_type == "image/png"
    assert snapshot.structural_summary["children"][0]["tag"] == "html"


def test_collect_without_optional_files(tmp_path):
    target = _make_target(tmp_path, markup=False, screenshot=False)
    snapshot = asyncio.run(target.collect(CancellationToken()))

    assert snapshot.has_visual is False
    assert snapshot.structural_summary == {}


def test_collect_missing_markup_is_collection_error(tmp_path):
    target = StylesheetFileTarget(
        stylesheet_path=str(tmp_path / "g.css"),
        markup_path=str(tmp_path / "missing.html"),
    )
    with pytest.raises(CollectionError):
        asyncio.run(target.collect(CancellationToken()))


def test_apply_writes_and_returns_fresh_snapshot(tmp_path):
    target = _make_target(tmp_path)
    css = ".site-header { background: #111; }\n.title { color: #fff; }"
    result = asyncio.run(target.apply(css, CancellationToken()))

    assert result.success is True
    assert result.applied_rules == 2
    assert result.snapshot_after.current_artifact_text == css
    assert result.snapshot_after.computed_style_map[".title"] == {"color": "#fff"}
    with open(target.stylesheet_path, encoding="utf-8") as f:
        assert f.read() == css
    leftovers = [n for n in os.listdir(os.path.dirname(target.stylesheet_path)) if n.startswith(".pilot-")]
    assert leftovers == []


def test_apply_rejects_malformed_stylesheet(tmp_path):
    target = _make_target(tmp_path)
    result = asyncio.run(target.apply(".a { color: red;", CancellationToken()))

    assert result.success is False
    assert "Unbalanced" in result.error
    assert not os.path.exists(target.stylesheet_path)


def test_apply_checks_token(tmp_path):
    token = CancellationToken()
    token.cancel()
    with pytest.raises(CancellationError):
        asyncio.run(_make_target(tmp_path).apply(".a {}", token))


# ===================================================================
# Results writer
# ===================================================================
def test_results_writer(tmp_path):
    result = ProcessingResult(
        session_id="pilot_1",
        status="complete",
        success=True,
        iterations_used=2,
        generated_artifact=".a {}",
    )
    log = RunLog()
    log.info("Starting")
    output = tmp_path / "runs" / "summary.json"

    assert ResultsWriter.write_results(result, str(output), context=ProcessingContext(), logs=list(log.entries))

    data = json.loads(output.read_text())
    assert data["session"]["session_id"] == "pilot_1"
    assert data["final_results"]["iterations_used"] == 2
    assert "generated_artifact" not in data["final_results"]
    assert data["generated_artifact"] == ".a {}"
    assert data["logs"][0]["message"] == "Starting"
    assert data["iterations"] == []


def test_results_writer_reports_io_failure(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    result = ProcessingResult(session_id="s", status="error")
    assert ResultsWriter.write_results(result, str(blocker / "summary.json")) is False
