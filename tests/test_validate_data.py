"""End-to-end tests for the validate-data CLI (bcs_tools/validate_data.py).

Run: pytest tests/test_validate_data.py -v
"""

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest
import yaml

from bcs_tools.code_registry import StaticCodeRegistry, UnavailableRegistry
from bcs_tools.validate_config import (
    DEFAULT_ABSTRACT_LIMIT,
    DEFAULT_SUMMARY_LIMIT,
    SetupError,
    build_config,
    load_config_file,
)
from bcs_tools.validate_data import main


def run_json(capsys, data_dir, registry, *extra):
    code = main(["--data-dir", str(data_dir), "--json", *extra], registry=registry)
    out, err = capsys.readouterr()
    return code, json.loads(out), out, err


def check(report, name):
    return next(c for c in report["checks"] if c["check"] == name)


class TestScenarios:
    def test_missing_root(self, tmp_path, capsys, registry):
        code, report, _, _ = run_json(capsys, tmp_path / "data", registry)
        assert code == 1
        assert report["status"] == "fail"
        assert report["summary"]["checks_run"] == 9
        assert check(report, "data_directory_exists")["status"] == "fail"
        # every other check still ran and reported
        assert len(report["checks"]) == 9

    def test_missing_summary_tier(self, data_dir, capsys, write_rule, registry):
        write_rule(data_dir, "02-variables/01-x", tiers=("complete", "abstract"))
        code, report, _, _ = run_json(capsys, data_dir, registry)
        assert code == 1
        assert report["summary"]["errors"] == 1
        assert check(report, "tier_file_completeness")["status"] == "fail"

    def test_single_digit_prefix_flagged_twice(self, data_dir, capsys, write_rule, registry):
        write_rule(data_dir, "03-expansion/2-foo")
        write_rule(data_dir, "03-expansion/00-section")
        code, report, _, _ = run_json(capsys, data_dir, registry)
        assert code == 1
        assert check(report, "numeric_prefixes_zero_padded")["status"] == "fail"
        assert check(report, "file_naming_conventions")["status"] == "fail"
        # 3 tier files, each flagged by both checks
        assert report["summary"]["errors"] == 6

    def test_missing_section_summary(self, data_dir, capsys, write_rule, registry):
        write_rule(data_dir, "05-control-flow/00-section", tiers=("complete", "abstract"))
        code, report, _, _ = run_json(capsys, data_dir, registry)
        assert code == 1
        sect = check(report, "section_directories_have_section_files")
        assert sect["status"] == "fail"
        # 00-section.complete.md also lacks its summary sibling
        assert report["summary"]["errors"] == 2

    def test_oversized_summary_is_only_a_warning(self, data_dir, capsys, registry):
        (data_dir / "02-variables" / "01-declarations.summary.md").write_text("x" * 12000)
        code, report, _, _ = run_json(capsys, data_dir, registry, "--summary-limit", "10000")
        assert code == 0
        assert report["status"] == "pass"
        assert report["summary"] == {"errors": 0, "warnings": 1, "checks_run": 9}
        assert check(report, "file_size_limits")["status"] == "warn"

    def test_valid_corpus_json(self, data_dir, capsys, registry):
        code, report, out, err = run_json(capsys, data_dir, registry)
        assert code == 0
        assert out.startswith('{"status":"pass","summary":{"errors":0,"warnings":0,"checks_run":9},"checks":[')
        assert out.count("\n") == 1
        assert err == ""
        assert [c["status"] for c in report["checks"]] == ["pass"] * 9


class TestProperties:
    def test_idempotent_json(self, data_dir, capsys, write_rule, registry):
        write_rule(data_dir, "02-variables/01-x", tiers=("complete",))
        _, _, first, _ = run_json(capsys, data_dir, registry)
        _, _, second, _ = run_json(capsys, data_dir, registry)
        assert first == second

    def test_registry_unavailable_warns(self, data_dir, capsys):
        code, report, _, _ = run_json(capsys, data_dir, UnavailableRegistry())
        assert code == 0
        assert report["summary"]["warnings"] == 1
        uniq = check(report, "bcs_code_uniqueness")
        assert uniq == {"check": "bcs_code_uniqueness", "status": "warn",
                        "message": "registry unavailable, skipping uniqueness check"}

    def test_duplicate_codes_fail(self, data_dir, capsys, valid_codes):
        reg = StaticCodeRegistry(valid_codes + [valid_codes[0]])
        code, report, _, _ = run_json(capsys, data_dir, reg)
        assert code == 1
        assert check(report, "bcs_code_uniqueness")["status"] == "fail"

    def test_registry_output_with_invalid_utf8(self, data_dir, tmp_path, capsys):
        prog = tmp_path / "fake-bcs"
        prog.write_text("#!/bin/sh\nprintf 'BCS0101:x:\\377\\376 bad\\n'\n", encoding="utf-8")
        prog.chmod(0o755)
        code = main(["--data-dir", str(data_dir), "--json", "--bcs-cmd", str(prog)])
        report = json.loads(capsys.readouterr().out)
        assert code == 0
        uniq = check(report, "bcs_code_uniqueness")
        assert uniq["status"] == "pass"
        assert "crashed" not in uniq["message"]

    def test_exit_on_error_stops_early(self, data_dir, capsys, write_rule, registry):
        write_rule(data_dir, "02-variables/01-x", tiers=("complete",))
        code, report, _, _ = run_json(capsys, data_dir, registry, "--exit-on-error")
        assert code == 1
        assert report["summary"]["checks_run"] == 2
        assert report["checks"][-1]["check"] == "tier_file_completeness"

    def test_check_decode_adds_tenth_check(self, data_dir, capsys, registry):
        code, report, _, _ = run_json(capsys, data_dir, registry, "--check-decode")
        assert code == 0
        assert report["summary"]["checks_run"] == 10
        assert report["checks"][-1]["check"] == "bcs_code_decodability"


class TestTextMode:
    def test_progress_and_summary_on_stderr(self, data_dir, capsys, registry):
        code = main(["--data-dir", str(data_dir)], registry=registry)
        out, err = capsys.readouterr()
        assert code == 0
        assert out == ""
        assert "Checking tier file completeness..." in err
        assert "Validation complete: All checks passed" in err

    def test_quiet_shows_only_errors(self, data_dir, capsys, write_rule, registry):
        write_rule(data_dir, "02-variables/01-x", tiers=("complete", "abstract"))
        code = main(["--data-dir", str(data_dir), "-q"], registry=registry)
        _, err = capsys.readouterr()
        assert code == 1
        assert "Checking" not in err
        assert "02-variables/01-x.summary.md" in err
        assert "Validation failed: 1 error(s), 0 warning(s)" in err

    def test_last_verbosity_flag_wins(self, data_dir, capsys, registry):
        main(["--data-dir", str(data_dir), "-q", "-v"], registry=registry)
        _, err = capsys.readouterr()
        assert "Checking" in err

    def test_report_file(self, data_dir, tmp_path, capsys, registry):
        report_path = tmp_path / "reports" / "validation.json"
        code = main(["--data-dir", str(data_dir), "--report", str(report_path)],
                    registry=registry)
        capsys.readouterr()
        assert code == 0
        data = json.loads(report_path.read_text(encoding="utf-8"))
        assert data["summary"]["checks_run"] == 9


class TestArguments:
    def test_help_exits_zero(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--help"])
        assert exc.value.code == 0
        assert "usage:" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert "version" in capsys.readouterr().out

    @pytest.mark.parametrize("argv", [
        ["--bogus"],
        ["--summary-limit"],
        ["--summary-limit", "abc"],
        ["--abstract-limit", "-5"],
        ["--registry-timeout", "0"],
    ])
    def test_invalid_arguments_exit_two(self, argv, capsys):
        with pytest.raises(SystemExit) as exc:
            main(argv)
        assert exc.value.code == 2

    def test_bad_config_exits_two(self, data_dir, tmp_path, capsys, registry):
        cfg = tmp_path / "bad.yaml"
        cfg.write_text("summary_limit: lots\n", encoding="utf-8")
        code = main(["--data-dir", str(data_dir), "--config", str(cfg)],
                    registry=registry)
        assert code == 2
        assert "summary_limit" in capsys.readouterr().err

    @pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0,
                        reason="needs POSIX permissions and a non-root user")
    def test_unstatable_root_exits_two(self, tmp_path, capsys):
        locked = tmp_path / "locked"
        locked.mkdir()
        locked.chmod(0)
        try:
            code = main(["--data-dir", str(locked / "data")], registry=UnavailableRegistry())
        finally:
            locked.chmod(0o755)
        assert code == 2


class TestConfig:
    def test_defaults(self, tmp_path):
        cfg = build_config(None, {"data_dir": str(tmp_path)}, registry=UnavailableRegistry())
        assert cfg.summary_limit == DEFAULT_SUMMARY_LIMIT == 10000
        assert cfg.abstract_limit == DEFAULT_ABSTRACT_LIMIT == 1500
        assert cfg.exit_on_error is False

    def test_file_then_cli_precedence(self, tmp_path):
        cfg_path = tmp_path / "conf" / "validate.yaml"
        cfg_path.parent.mkdir()
        cfg_path.write_text(yaml.safe_dump({
            "data_dir": "../data",
            "summary_limit": 8000,
            "abstract_limit": 1200,
        }), encoding="utf-8")
        values = load_config_file(cfg_path)
        assert Path(values["data_dir"]).resolve() == (tmp_path / "data").resolve()
        cfg = build_config(values, {"summary_limit": 9000, "abstract_limit": None},
                           registry=UnavailableRegistry())
        assert cfg.summary_limit == 9000
        assert cfg.abstract_limit == 1200
        assert cfg.data_dir.resolve() == (tmp_path / "data").resolve()

    def test_empty_file_is_fine(self, tmp_path):
        p = tmp_path / "empty.yaml"
        p.write_text("", encoding="utf-8")
        assert load_config_file(p) == {}

    @pytest.mark.parametrize("content", [
        "unknown_key: 1\n",
        "- a list\n",
        "summary_limit: -1\n",
        "exit_on_error: maybe\n",
        "data_dir: [unclosed\n",
    ])
    def test_invalid_files(self, tmp_path, content):
        p = tmp_path / "c.yaml"
        p.write_text(content, encoding="utf-8")
        with pytest.raises(SetupError):
            load_config_file(p)

    def test_missing_file(self, tmp_path):
        with pytest.raises(SetupError, match="Cannot read config file"):
            load_config_file(tmp_path / "nope.yaml")

    def test_negative_limit_rejected(self, tmp_path):
        with pytest.raises(SetupError):
            build_config(None, {"data_dir": str(tmp_path), "summary_limit": -1},
                         registry=UnavailableRegistry())


class TestModuleEntryPoint:
    def test_python_dash_m(self, data_dir):
        env = dict(os.environ, PATH=str(data_dir / "no-bin"))
        res = subprocess.run(
            [sys.executable, "-m", "bcs_tools.validate_data", "--data-dir", str(data_dir), "--json"],
            capture_output=True, text=True, env=env,
            cwd=os.path.join(os.path.dirname(__file__), ".."),
        )
        assert res.returncode == 0, res.stderr
        report = json.loads(res.stdout)
        # no bcs program anywhere: uniqueness degrades to a warning
        assert report["summary"] == {"errors": 0, "warnings": 1, "checks_run": 9}
