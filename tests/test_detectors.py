"""Tests for the struggle detectors."""

import pytest
from conftest import LogBuilder

from friction.config import AnalysisConfig, DetectorConfig
from friction.detectors import (
    AdvancedLoopDetector,
    ContextSwitchingDetector,
    ErrorStreakDetector,
    LongSessionDetector,
    PatternKind,
    ReadingSpiralDetector,
    RedundantSequenceDetector,
    Severity,
    ShotgunDebuggingDetector,
    SimpleLoopDetector,
    StagnationDetector,
    apply_struggle_results,
    detect_struggles,
    get_all_detectors,
    get_detector,
    list_detectors,
    register_detector,
)
from friction.detectors.error_patterns import (
    ENVIRONMENT_SETUP,
    HIGH_ERROR_DENSITY,
    STRING_REPLACEMENT_FAILURE,
    TIMEOUT,
    USER_INTERRUPTION,
    BashErrorCategory,
    classify_bash_error,
    detect_error_patterns,
)
from friction.detectors.long_sessions import Trend, analyze_struggle_trend
from friction.detectors.loops import detect_advanced_loops, detect_simple_loops
from friction.detectors.progress import detect_no_progress, detect_plan_editing_loops
from friction.detectors.redundant import DUPLICATE_COMMAND, UNNECESSARY_RE_READ
from friction.detectors.streaks import detect_error_streaks, detect_stagnation
from friction.models import Confidence, ToolOperation

SHOTGUN_TOOLS = ["Read", "Grep", "Bash", "Edit", "Glob", "Write"]


class TestSimpleLoop:
    """Tests for SimpleLoopDetector."""

    def test_three_identical_calls(self, builder: LogBuilder, make_session):
        for _ in range(3):
            builder.tool("Bash", {"command": "ls"})

        findings = detect_simple_loops(make_session(builder))

        assert len(findings) == 1
        loop = findings[0]
        assert loop.name == "Bash"
        assert loop.input == {"command": "ls"}
        assert loop.count == 3
        assert loop.tool_indices == [0, 1, 2]
        assert loop.provenance.confidence is Confidence.HIGH
        assert loop.provenance.session_id == "session-1"

    def test_two_calls_not_a_loop(self, builder: LogBuilder, make_session):
        builder.tool("Bash", {"command": "ls"})
        builder.tool("Bash", {"command": "ls"})

        assert detect_simple_loops(make_session(builder)) == []

    def test_different_input_breaks_run(self, builder: LogBuilder, make_session):
        for command in ("ls", "ls", "pwd", "ls", "ls"):
            builder.tool("Bash", {"command": command})

        assert detect_simple_loops(make_session(builder)) == []

    def test_threshold_from_config(self, builder: LogBuilder, make_session):
        builder.tool("Read", {"file_path": "a.py"})
        builder.tool("Read", {"file_path": "a.py"})

        detector = SimpleLoopDetector(config=DetectorConfig(simple_loop_min_count=2))

        assert len(detector.detect(make_session(builder))) == 1


class TestAdvancedLoop:
    """Tests for AdvancedLoopDetector."""

    def test_repeated_pair(self, builder: LogBuilder, make_session):
        for i in range(3):
            builder.tool("Edit", {"file_path": "a.py", "old_string": str(i), "new_string": "x"})
            builder.tool("Bash", {"command": f"pytest -k {i}"})

        findings = detect_advanced_loops(make_session(builder))

        assert len(findings) == 1
        loop = findings[0]
        assert loop.tool_sequence == ["Edit", "Bash"]
        assert loop.count == 3
        assert (loop.start_index, loop.end_index) == (0, 5)
        assert loop.provenance.confidence is Confidence.HIGH

    def test_repeated_triple(self, builder: LogBuilder, make_session):
        for i in range(2):
            builder.tool("Read", {"file_path": f"{i}.py"})
            builder.tool("Edit", {"file_path": f"{i}.py"})
            builder.tool("Bash", {"command": f"make {i}"})

        findings = detect_advanced_loops(make_session(builder))

        assert [f.tool_sequence for f in findings] == [["Read", "Edit", "Bash"]]
        assert findings[0].count == 2
        assert findings[0].provenance.confidence is Confidence.MEDIUM

    def test_single_tool_run_not_reported(self, builder: LogBuilder, make_session):
        for i in range(4):
            builder.tool("Bash", {"command": f"echo {i}"})

        assert detect_advanced_loops(make_session(builder)) == []

    def test_no_repetition(self, builder: LogBuilder, make_session):
        for name in ("Read", "Edit", "Bash", "Grep"):
            builder.tool(name)

        assert AdvancedLoopDetector().detect(make_session(builder)) == []


class TestErrorStreak:
    """Tests for ErrorStreakDetector."""

    def test_consecutive_failures(self, builder: LogBuilder, make_session):
        builder.tool("Read", {"file_path": "a.py"})
        for i in range(3):
            builder.tool("Bash", {"command": f"npm test {i}"}, output="FAIL", is_error=True)

        findings = detect_error_streaks(make_session(builder))

        assert len(findings) == 1
        assert findings[0].name == "Bash"
        assert findings[0].count == 3
        assert findings[0].tool_indices == [1, 2, 3]
        assert findings[0].severity is Severity.ERROR

    def test_different_tools_break_streak(self, builder: LogBuilder, make_session):
        builder.tool("Bash", {"command": "a"}, is_error=True)
        builder.tool("Read", {"file_path": "b"}, is_error=True)
        builder.tool("Bash", {"command": "c"}, is_error=True)

        assert detect_error_streaks(make_session(builder)) == []

    def test_two_failures_below_threshold(self, builder: LogBuilder, make_session):
        builder.tool("Bash", {"command": "a"}, is_error=True)
        builder.tool("Bash", {"command": "b"}, is_error=True)

        assert ErrorStreakDetector().detect(make_session(builder)) == []


class TestStagnation:
    """Tests for StagnationDetector."""

    def test_identical_output(self, builder: LogBuilder, make_session):
        builder.tool("Grep", {"pattern": "foo"}, output="No matches found")
        builder.tool("Grep", {"pattern": "bar"}, output="No matches found")

        findings = detect_stagnation(make_session(builder))

        assert len(findings) == 1
        assert findings[0].count == 2
        assert findings[0].output_size == len("No matches found")
        assert findings[0].provenance.confidence is Confidence.MEDIUM

    def test_structured_output_compared_canonically(self, builder: LogBuilder, make_session):
        builder.tool("Read", {"file_path": "a"}, output=[{"type": "text", "text": "same"}])
        builder.tool("Read", {"file_path": "b"}, output=[{"text": "same", "type": "text"}])
        builder.tool("Read", {"file_path": "c"}, output=[{"type": "text", "text": "same"}])

        findings = detect_stagnation(make_session(builder))

        assert findings[0].count == 3
        assert findings[0].provenance.confidence is Confidence.HIGH

    def test_empty_output_ignored(self, builder: LogBuilder, make_session):
        builder.tool("Bash", {"command": "true"}, output="")
        builder.tool("Bash", {"command": "true"}, output="")

        assert StagnationDetector().detect(make_session(builder)) == []

    def test_different_tools(self, builder: LogBuilder, make_session):
        builder.tool("Bash", {"command": "cat a"}, output="x")
        builder.tool("Read", {"file_path": "a"}, output="x")

        assert detect_stagnation(make_session(builder)) == []


class TestReadingSpiral:
    """Tests for ReadingSpiralDetector."""

    def test_reading_without_acting(self, builder: LogBuilder, make_session):
        builder.assistant("Exploring")
        for i in range(12):
            builder.tool("Read", {"file_path": f"src/module_{i}.py"})

        findings = ReadingSpiralDetector().detect(make_session(builder))

        assert len(findings) == 1
        spiral = findings[0]
        assert spiral.read_count == 12
        assert spiral.action_count == 0
        assert spiral.ratio == 12.0
        assert spiral.unique_files == 12
        assert spiral.tool_indices == list(range(12))
        assert spiral.provenance.confidence is Confidence.HIGH

    def test_balanced_work(self, builder: LogBuilder, make_session):
        for i in range(6):
            builder.tool("Read", {"file_path": f"{i}.py"})
            builder.tool("Edit", {"file_path": f"{i}.py"})

        assert ReadingSpiralDetector().detect(make_session(builder)) == []

    def test_user_directed_reads_excluded(self, builder: LogBuilder, make_session):
        for i in range(12):
            builder.user(f"read src/module_{i}.py")
            builder.tool("Read", {"file_path": f"src/module_{i}.py"})

        assert ReadingSpiralDetector().detect(make_session(builder)) == []

    def test_short_session(self, builder: LogBuilder, make_session):
        for i in range(7):
            builder.tool("Grep", {"pattern": f"term{i}"})

        findings = ReadingSpiralDetector().detect(make_session(builder))

        assert len(findings) == 1
        assert findings[0].read_count == 7


class TestShotgunDebugging:
    """Tests for ShotgunDebuggingDetector."""

    def test_rapid_varied_calls(self, builder: LogBuilder, make_session):
        for i in range(10):
            builder.tool(SHOTGUN_TOOLS[i % len(SHOTGUN_TOOLS)], {"n": i})

        findings = ShotgunDebuggingDetector().detect(make_session(builder))

        assert len(findings) == 1
        burst = findings[0]
        assert burst.total_tools == 10
        assert burst.tool_variety == 6
        assert burst.duration_minutes == 1.5
        assert burst.tool_velocity == 6.7
        assert burst.severity is Severity.ERROR
        assert burst.provenance.confidence is Confidence.HIGH

    def test_slow_calls(self, make_session):
        builder = LogBuilder(step=60)
        for i in range(10):
            builder.tool(SHOTGUN_TOOLS[i % len(SHOTGUN_TOOLS)], {"n": i})

        assert ShotgunDebuggingDetector().detect(make_session(builder)) == []

    def test_low_variety(self, builder: LogBuilder, make_session):
        for i in range(12):
            builder.tool("Read" if i % 2 else "Grep", {"n": i})

        assert ShotgunDebuggingDetector().detect(make_session(builder)) == []


class TestRedundantSequence:
    """Tests for RedundantSequenceDetector."""

    def test_reread_after_noop_edit(self, builder: LogBuilder, make_session):
        builder.tool("Read", {"file_path": "a.py"})
        builder.tool("Edit", {"file_path": "a.py", "old_string": "x = 1", "new_string": "x = 1"})
        builder.tool("Read", {"file_path": "a.py"})

        findings = RedundantSequenceDetector().detect(make_session(builder))

        assert len(findings) == 1
        assert findings[0].sequence_type == UNNECESSARY_RE_READ
        assert findings[0].indices == [0, 1, 2]
        assert findings[0].file_path == "a.py"

    def test_reread_after_real_edit(self, builder: LogBuilder, make_session):
        builder.tool("Read", {"file_path": "a.py"})
        builder.tool("Edit", {"file_path": "a.py", "old_string": "x = 1", "new_string": "x = 2"})
        builder.tool("Read", {"file_path": "a.py"})

        assert RedundantSequenceDetector().detect(make_session(builder)) == []

    def test_duplicate_command(self, builder: LogBuilder, make_session):
        builder.tool("Bash", {"command": "npm install"})
        builder.tool("Bash", {"command": "npm install"})

        findings = RedundantSequenceDetector().detect(make_session(builder))

        assert len(findings) == 1
        assert findings[0].sequence_type == DUPLICATE_COMMAND
        assert findings[0].command == "npm install"
        assert findings[0].tool_indices == [0, 1]

    def test_git_workflow_allowed(self, builder: LogBuilder, make_session):
        builder.tool("Bash", {"command": "git status"})
        builder.tool("Bash", {"command": "git status"})

        assert RedundantSequenceDetector().detect(make_session(builder)) == []

    def test_retry_after_failure_allowed(self, builder: LogBuilder, make_session):
        builder.tool("Bash", {"command": "npm test"}, is_error=True)
        builder.tool("Bash", {"command": "npm test"})

        assert RedundantSequenceDetector().detect(make_session(builder)) == []


class TestContextSwitching:
    """Tests for ContextSwitchingDetector."""

    def test_many_files_few_ops(self, builder: LogBuilder, make_session):
        for i in range(8):
            builder.tool("Read", {"file_path": f"/src/pkg/file_{i}.py"})

        findings = ContextSwitchingDetector().detect(make_session(builder))

        assert len(findings) == 1
        switching = findings[0]
        assert switching.unique_files == 8
        assert switching.total_file_ops == 8
        assert switching.switches == 7
        assert switching.avg_ops_per_file == 1.0
        assert switching.switch_rate == 0.88
        assert len(switching.top_files) == 3
        assert switching.top_files[0] == {"file": "file_0.py", "count": 1}
        assert switching.provenance.confidence is Confidence.HIGH

    def test_focused_work(self, builder: LogBuilder, make_session):
        for i in range(10):
            builder.tool("Edit" if i % 2 else "Read", {"file_path": "a.py" if i < 5 else "b.py"})

        assert ContextSwitchingDetector().detect(make_session(builder)) == []

    def test_too_few_operations(self, builder: LogBuilder, make_session):
        for i in range(5):
            builder.tool("Read", {"file_path": f"{i}.py"})

        assert ContextSwitchingDetector().detect(make_session(builder)) == []

    def test_non_file_tools_ignored(self, builder: LogBuilder, make_session):
        for i in range(10):
            builder.tool("Bash", {"command": f"cat {i}.py"})

        assert ContextSwitchingDetector().detect(make_session(builder)) == []


class TestLongSession:
    """Tests for LongSessionDetector."""

    def test_long_session(self, builder: LogBuilder, make_session):
        builder.user("start")
        builder.advance(900)
        builder.assistant("done")

        findings = LongSessionDetector().detect(make_session(builder))

        assert len(findings) == 1
        assert findings[0].duration_seconds == 905
        assert findings[0].threshold_seconds == 600
        assert findings[0].severity is Severity.INFO
        assert findings[0].tool_indices == []

    def test_short_session(self, builder: LogBuilder, make_session):
        builder.user("start")
        builder.assistant("done")

        assert LongSessionDetector().detect(make_session(builder)) == []


class TestRegistry:
    """Tests for the detector registry."""

    def test_builtin_detectors_registered(self):
        assert set(list_detectors()) >= {kind.value for kind in PatternKind}

    def test_supplementary_detectors_registered(self):
        names = list_detectors()
        assert {"no_progress", "plan_editing_loop", "error_pattern"} <= set(names)
        assert names.index("long_session") < names.index("no_progress")

    def test_get_detector_unknown(self):
        with pytest.raises(ValueError, match="not found"):
            get_detector("nope")

    def test_get_detector_passes_config(self):
        config = DetectorConfig(simple_loop_min_count=5)
        detector = get_detector("simple_loop", config)
        assert detector.config.simple_loop_min_count == 5

    def test_register_custom_detector(self, monkeypatch):
        from friction import detectors

        class NoopDetector(SimpleLoopDetector):
            name = "noop"

            def detect(self, session):
                return []

        monkeypatch.setitem(detectors._DETECTORS, "noop", NoopDetector)
        assert "noop" in list_detectors()
        assert isinstance(get_detector("noop"), NoopDetector)

    def test_register_detector_adds_name(self, monkeypatch):
        from friction import detectors

        monkeypatch.setattr(detectors, "_DETECTORS", dict(detectors._DETECTORS))
        register_detector("extra", LongSessionDetector)
        assert "extra" in list_detectors()

    def test_enabled_subset(self):
        config = AnalysisConfig().with_detectors(enabled=["error_streak", "long_session"])
        names = [d.name for d in get_all_detectors(config)]
        assert names == ["error_streak", "long_session"]


class TestDetectStruggles:
    """Tests for detect_struggles and apply_struggle_results."""

    def test_runs_enabled_detectors(self, builder: LogBuilder, make_session):
        for _ in range(3):
            builder.tool("Bash", {"command": "ls"}, is_error=True)
        session = make_session(builder)

        all_findings = detect_struggles(session, AnalysisConfig())
        only_loops = detect_struggles(
            session, AnalysisConfig().with_detectors(enabled=["simple_loop"])
        )

        kinds = {f.kind for f in all_findings}
        assert {PatternKind.SIMPLE_LOOP, PatternKind.ERROR_STREAK} <= kinds
        assert [f.kind for f in only_loops] == [PatternKind.SIMPLE_LOOP]

    def test_apply_results(self, builder: LogBuilder, make_session):
        for _ in range(3):
            builder.tool("Bash", {"command": "ls"}, is_error=True)
        session = make_session(builder)

        apply_struggle_results(session, detect_struggles(session))

        assert session.has_struggle
        assert "simple_loop" in session.struggle_indicators
        assert "error_streak" in session.struggle_indicators
        assert len(session.struggle_indicators) == len(set(session.struggle_indicators))

    def test_clean_session(self, builder: LogBuilder, make_session):
        builder.user("hi")
        builder.assistant("hello")
        session = make_session(builder)

        apply_struggle_results(session, detect_struggles(session))

        assert not session.has_struggle
        assert session.struggle_indicators == []

    def test_finding_to_dict(self, builder: LogBuilder, make_session):
        for _ in range(3):
            builder.tool("Bash", {"command": "ls"})

        data = detect_simple_loops(make_session(builder))[0].to_dict()

        assert data["kind"] == "simple_loop"
        assert data["severity"] == "warning"
        assert data["count"] == 3
        assert data["_provenance"]["pattern_type"] == "simple_loop"
        assert data["_provenance"]["confidence"] == "high"
        assert "detection_timestamp" in data["_provenance"]


class TestProductiveLoops:
    """Tests for the productive-loop filter of SimpleLoopDetector."""

    def test_grep_with_changing_results_skipped(self, builder: LogBuilder, make_session):
        for hits in ("a.py:1", "b.py:7", "c.py:3"):
            builder.tool("Grep", {"pattern": "TODO"}, output=hits)

        assert detect_simple_loops(make_session(builder)) == []

    def test_grep_with_same_results_flagged(self, builder: LogBuilder, make_session):
        for _ in range(3):
            builder.tool("Grep", {"pattern": "TODO"}, output="a.py:1")

        assert len(detect_simple_loops(make_session(builder))) == 1

    def test_successful_edits_skipped(self, builder: LogBuilder, make_session):
        edit = {"file_path": "a.py", "old_string": "x", "new_string": "y"}
        for _ in range(3):
            builder.tool("Edit", edit, output="The file a.py has been updated.")

        assert detect_simple_loops(make_session(builder)) == []

    def test_failing_edits_flagged(self, builder: LogBuilder, make_session):
        edit = {"file_path": "a.py", "old_string": "x", "new_string": "y"}
        for _ in range(3):
            builder.tool("Edit", edit, output="String to replace not found in file.", is_error=True)

        findings = detect_simple_loops(make_session(builder))

        assert [f.name for f in findings] == ["Edit"]

    def test_edits_reporting_different_files_skipped(self, builder: LogBuilder, make_session):
        edit = {"file_path": "a.py", "old_string": "x", "new_string": "y"}
        for output in ("Added alert UI to dashboard.js", "Wired it in app.js", "Fixed main.js"):
            builder.tool("Edit", edit, output=output, is_error=True)

        assert detect_simple_loops(make_session(builder)) == []

    def test_todo_updates_skipped(self, builder: LogBuilder, make_session):
        for _ in range(4):
            builder.tool("TodoWrite", {"todos": []})

        assert detect_simple_loops(make_session(builder)) == []

    def test_reads_next_to_edit_skipped(self, builder: LogBuilder, make_session):
        for _ in range(3):
            builder.tool("Read", {"file_path": "a.py"})
        builder.tool("Edit", {"file_path": "a.py", "old_string": "x", "new_string": "y"})

        assert detect_simple_loops(make_session(builder)) == []

    def test_reads_alone_flagged(self, builder: LogBuilder, make_session):
        for _ in range(3):
            builder.tool("Read", {"file_path": "a.py"})

        assert len(detect_simple_loops(make_session(builder))) == 1

    def test_filter_can_be_disabled(self, builder: LogBuilder, make_session):
        for _ in range(3):
            builder.tool("TodoWrite", {"todos": []})
        config = DetectorConfig(simple_loop_skip_productive=False)

        assert len(detect_simple_loops(make_session(builder), config=config)) == 1


class TestNoProgress:
    """Tests for NoProgressDetector."""

    def test_every_call_failed(self, builder: LogBuilder, make_session):
        for i in range(10):
            builder.tool("Bash", {"command": f"make target{i}"}, output="boom", is_error=True)

        findings = detect_no_progress(make_session(builder))

        assert len(findings) == 1
        assert findings[0].tool_count == 10
        assert findings[0].severity is Severity.ERROR
        assert findings[0].tool_indices == []

    def test_too_few_calls(self, builder: LogBuilder, make_session):
        for i in range(9):
            builder.tool("Bash", {"command": f"make target{i}"}, is_error=True)

        assert detect_no_progress(make_session(builder)) == []

    def test_one_success_is_progress(self, builder: LogBuilder, make_session):
        for i in range(10):
            builder.tool("Bash", {"command": f"make target{i}"}, is_error=True)
        builder.tool("Bash", {"command": "make"})

        assert detect_no_progress(make_session(builder)) == []

    def test_threshold_from_config(self, builder: LogBuilder, make_session):
        for i in range(3):
            builder.tool("Bash", {"command": f"make target{i}"}, is_error=True)
        config = DetectorConfig(no_progress_min_calls=3)

        assert len(detect_no_progress(make_session(builder), config=config)) == 1


def plan_edit(builder: LogBuilder, path: str, n: int = 0) -> None:
    builder.tool("Edit", {"file_path": path, "old_string": str(n), "new_string": str(n + 1)})


class TestPlanEditingLoop:
    """Tests for PlanEditingLoopDetector."""

    def test_repeated_plan_edits(self, builder: LogBuilder, make_session):
        plan_edit(builder, "docs/plan.md", 0)
        builder.tool("Read", {"file_path": "src/app.py"})
        plan_edit(builder, "docs/plan.md", 1)
        plan_edit(builder, "docs/plan.md", 2)

        findings = detect_plan_editing_loops(make_session(builder))

        assert len(findings) == 1
        loop = findings[0]
        assert loop.file_path == "docs/plan.md"
        assert loop.edit_indices == [0, 2, 3]
        assert loop.count == 3
        assert loop.provenance.confidence is Confidence.HIGH

    def test_other_edits_between_do_not_break_run(self, builder: LogBuilder, make_session):
        plan_edit(builder, "PLAN.md")
        plan_edit(builder, "src/app.py")
        plan_edit(builder, "PLAN.md", 1)

        findings = detect_plan_editing_loops(make_session(builder))

        assert [f.edit_indices for f in findings] == [[0, 2]]
        assert findings[0].provenance.confidence is Confidence.MEDIUM

    def test_alternating_plan_files(self, builder: LogBuilder, make_session):
        plan_edit(builder, "plan.md")
        plan_edit(builder, "plan-v2.md")
        plan_edit(builder, "plan.md", 1)

        assert detect_plan_editing_loops(make_session(builder)) == []

    def test_directory_name_is_not_a_plan(self, builder: LogBuilder, make_session):
        for n in range(3):
            plan_edit(builder, "planets/orbit.py", n)

        assert detect_plan_editing_loops(make_session(builder)) == []

    def test_marker_from_config(self, builder: LogBuilder, make_session):
        for n in range(2):
            plan_edit(builder, "ROADMAP.md", n)
        config = DetectorConfig(plan_file_marker="roadmap")

        assert len(detect_plan_editing_loops(make_session(builder), config=config)) == 1


def bash_failure(command: str, output: str) -> ToolOperation:
    return ToolOperation("Bash", {"command": command}, output, "error", "toolu_1", 0)


class TestClassifyBashError:
    """Tests for classify_bash_error."""

    def test_only_failed_bash(self):
        assert classify_bash_error(ToolOperation("Read", {}, "x", "error", "t", 0)) is None
        assert classify_bash_error(ToolOperation("Bash", {}, "x", "success", "t", 0)) is None

    def test_command_not_found(self):
        result = classify_bash_error(bash_failure("rg TODO", "bash: rg: command not found"))

        assert result.category is BashErrorCategory.ENVIRONMENT
        assert result.error_type == "command_not_found"
        assert result.suggestion == "Install the missing command: rg"

    def test_service_unavailable(self):
        output = "Cannot connect to the Docker daemon at unix:///var/run/docker.sock"
        result = classify_bash_error(bash_failure("docker ps", output))

        assert result.error_type == "service_unavailable"

    def test_test_failure(self):
        result = classify_bash_error(bash_failure("npm test", "2 failing"))

        assert result.category is BashErrorCategory.WORKFLOW
        assert result.error_type == "test_failures"
        assert result.actionable

    def test_expected_failure(self):
        result = classify_bash_error(bash_failure("pytest", "1 test failed as expected"))

        assert result.category is BashErrorCategory.EXPECTED
        assert not result.actionable

    def test_compilation_error(self):
        result = classify_bash_error(bash_failure("make build", "syntax error near line 3"))

        assert result.error_type == "compilation_errors"

    def test_unclassified(self):
        result = classify_bash_error(bash_failure("ls /root", "permission denied"))

        assert result.category is BashErrorCategory.WORKFLOW
        assert result.error_type == "unclassified_error"


def patterns_of(findings, error_type: str) -> list:
    return [f for f in findings if f.error_type == error_type]


class TestErrorPattern:
    """Tests for ErrorPatternDetector."""

    def test_failed_replacements(self, builder: LogBuilder, make_session):
        output = "<tool_use_error>String to replace not found in file.</tool_use_error>"
        for n in range(3):
            builder.tool("Edit", {"file_path": "a.py", "old_string": str(n)}, output, True)

        findings = detect_error_patterns(make_session(builder))

        [pattern] = patterns_of(findings, STRING_REPLACEMENT_FAILURE)
        assert pattern.count == 3
        assert pattern.tool_indices == [0, 1, 2]
        assert pattern.kind is PatternKind.ERROR_PATTERN

    def test_user_interruptions(self, builder: LogBuilder, make_session):
        rejected = "The user doesn't want to proceed with this tool use."
        builder.tool("Bash", {"command": "rm -rf build"}, rejected, True)
        builder.tool("Read", {"file_path": "a.py"})
        builder.tool("Write", {"file_path": "a.py"}, rejected, True)

        findings = detect_error_patterns(make_session(builder))

        [pattern] = patterns_of(findings, USER_INTERRUPTION)
        assert pattern.operation_indices == [0, 2]

    def test_single_interruption_ignored(self, builder: LogBuilder, make_session):
        builder.tool("Bash", {"command": "rm -rf build"}, "[Request interrupted by user]", True)
        builder.tool("Read", {"file_path": "a.py"})

        assert patterns_of(detect_error_patterns(make_session(builder)), USER_INTERRUPTION) == []

    def test_timeout(self, builder: LogBuilder, make_session):
        builder.tool("Bash", {"command": "npm run dev"}, "Command timed out after 2m 0.0s", True)
        builder.tool("Read", {"file_path": "a.py"})

        [pattern] = patterns_of(detect_error_patterns(make_session(builder)), TIMEOUT)
        assert pattern.count == 1

    def test_high_error_density(self, builder: LogBuilder, make_session):
        for i in range(15):
            builder.tool("Read", {"file_path": f"{i}.py"})
        for i in range(5):
            builder.tool("Bash", {"command": f"step {i}"}, "boom", True)

        [pattern] = patterns_of(detect_error_patterns(make_session(builder)), HIGH_ERROR_DENSITY)
        assert pattern.count == 5
        assert pattern.details == "5 of 20 calls failed (25%)"

    def test_low_error_density(self, builder: LogBuilder, make_session):
        for i in range(16):
            builder.tool("Read", {"file_path": f"{i}.py"})
        for i in range(4):
            builder.tool("Bash", {"command": f"step {i}"}, "boom", True)

        findings = detect_error_patterns(make_session(builder))

        assert patterns_of(findings, HIGH_ERROR_DENSITY) == []

    def test_environment_setup(self, builder: LogBuilder, make_session):
        builder.tool("Bash", {"command": "rg TODO"}, "bash: rg: command not found", True)
        builder.tool("Bash", {"command": "docker ps"}, "Cannot connect to the Docker daemon", True)

        [pattern] = patterns_of(detect_error_patterns(make_session(builder)), ENVIRONMENT_SETUP)
        assert pattern.count == 2
        assert "command_not_found, service_unavailable" in pattern.details

    def test_single_call(self, builder: LogBuilder, make_session):
        builder.tool("Bash", {"command": "npm run dev"}, "Command timed out after 2m 0.0s", True)

        assert detect_error_patterns(make_session(builder)) == []


def trend_ops(*chunks: tuple[list[str], bool]) -> list[ToolOperation]:
    """Operations built from (tool names, failing) chunks."""
    ops: list[ToolOperation] = []
    for names, failing in chunks:
        for name in names:
            status = "error" if failing else "success"
            ops.append(ToolOperation(name, {}, "", status, f"t{len(ops)}", len(ops)))
    return ops


class TestStruggleTrend:
    """Tests for analyze_struggle_trend."""

    CALM = (["Read"] * 50, False)
    FRANTIC = (["Read", "Bash"] * 25, True)

    def test_too_few_operations(self):
        assert analyze_struggle_trend(trend_ops(self.CALM)) is None

    def test_too_few_chunks(self):
        result = analyze_struggle_trend(trend_ops(self.CALM, self.CALM))

        assert result.trend is Trend.TOO_SHORT
        assert len(result.chunks) == 2

    def test_degrading(self):
        result = analyze_struggle_trend(trend_ops(self.CALM, self.CALM, self.FRANTIC))

        assert result.trend is Trend.DEGRADING
        assert result.first_third_score == 0
        assert result.last_third_score == pytest.approx(2 + 49 / 50)

    def test_improving(self):
        result = analyze_struggle_trend(trend_ops(self.FRANTIC, self.CALM, self.CALM))

        assert result.trend is Trend.IMPROVING
        assert result.change_score < 0

    def test_steady(self):
        result = analyze_struggle_trend(trend_ops(self.CALM, self.CALM, self.CALM))

        assert result.trend is Trend.STEADY

    def test_chunk_metrics(self):
        ops = trend_ops((["Read", "Bash"], False), (["Read", "Bash"], True))

        result = analyze_struggle_trend(ops, min_operations=4, chunk_size=4)

        chunk = result.chunks[0]
        assert chunk.error_rate == 0.5
        assert chunk.switch_rate == 0.75
        assert chunk.tool_variety == 2

    def test_attached_to_long_session(self, builder: LogBuilder, make_session):
        builder.user("start")
        for i in range(6):
            builder.tool("Bash", {"command": f"step {i}"}, is_error=i >= 4)
        builder.advance(900)
        builder.assistant("done")
        config = DetectorConfig(trend_min_operations=6, trend_chunk_size=2)

        [finding] = LongSessionDetector(config=config).detect(make_session(builder))

        assert finding.trend.trend is Trend.DEGRADING
        assert finding.to_dict()["trend"]["trend"] == "degrading"
