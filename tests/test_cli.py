"""Tests for the structsim command line."""

import json
import logging

import pytest
import yaml
from click.testing import CliRunner

from structsim.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def files(clean_env, sources):
    """Write sample sources into a submissions directory."""
    root = clean_env / "submissions"
    root.mkdir()
    paths = {}
    for name, code in sources.items():
        path = root / f"{name}.py"
        path.write_text(code)
        paths[name] = path
    (root / "notes.txt").write_text("not python")
    return paths


class TestFingerprintCommand:
    """Test `structsim fingerprint`."""

    def test_json(self, runner, files):
        result = runner.invoke(cli, ["fingerprint", str(files["original"]), "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["serialized"].startswith("module:0")
        assert data["fingerprint"]["module"] == 1.0
        assert data["token_count"] == len(data["serialized"].split(" "))

    def test_tokens(self, runner, files):
        result = runner.invoke(cli, ["fingerprint", str(files["original"]), "--tokens"])

        assert result.exit_code == 0, result.output
        assert result.stdout.strip().startswith("module:0 ")

    def test_table(self, runner, files):
        result = runner.invoke(cli, ["fingerprint", str(files["original"])])

        assert result.exit_code == 0, result.output
        assert "module" in result.stdout

    def test_missing_file(self, runner, clean_env):
        result = runner.invoke(cli, ["fingerprint", "absent.py"])
        assert result.exit_code == 2

    def test_unsupported_language(self, runner, files):
        result = runner.invoke(cli, ["fingerprint", str(files["original"]), "-l", "cobol"])
        assert result.exit_code == 2


class TestCompareCommand:
    """Test `structsim compare`."""

    def test_renamed_copy(self, runner, files):
        result = runner.invoke(cli, [
            "compare", str(files["original"]), str(files["renamed"]), "--json",
        ])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["score"] == 1.0
        assert data["confidence"] == "high"
        assert data["flagged"] is True

    def test_human_output(self, runner, files):
        result = runner.invoke(cli, ["compare", str(files["original"]), str(files["different"])])

        assert result.exit_code == 0, result.output
        assert "Similarity" in result.stdout


class TestAnalyzeCommand:
    """Test `structsim analyze`."""

    def test_best_match_in_directory(self, runner, files):
        corpus_dir = files["original"].parent
        result = runner.invoke(cli, [
            "analyze", str(files["original"]), "--corpus", str(corpus_dir), "--json",
        ])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        # The target itself is excluded from its own corpus.
        assert data["corpus_size"] == 2
        assert data["matched_id"].endswith("renamed.py")
        assert data["score"] == 1.0

    def test_requires_corpus(self, runner, files):
        result = runner.invoke(cli, ["analyze", str(files["original"])])
        assert result.exit_code == 2


class TestBulkCommand:
    """Test `structsim bulk`."""

    def test_directory(self, runner, files):
        result = runner.invoke(cli, ["bulk", str(files["original"].parent), "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["metadata"]["sample_count"] == 3
        assert data["metadata"]["pair_count"] == 3
        assert len(data["matrix"]) == 3
        top = data["suspicious_pairs"][0]
        assert {top["label_a"], top["label_b"]} == {
            str(files["original"]), str(files["renamed"]),
        }

    def test_pair_ceiling(self, runner, files):
        result = runner.invoke(cli, [
            "bulk", str(files["original"].parent), "--max-pairs", "2",
        ])
        assert result.exit_code == 2

    def test_table_output(self, runner, files):
        result = runner.invoke(cli, ["bulk", str(files["original"].parent)])

        assert result.exit_code == 0, result.output
        assert "Compared 3 files" in result.stdout


class TestConfigCommands:
    """Test `structsim config`."""

    def test_init_and_show(self, runner, clean_env):
        path = clean_env / "conf.yml"
        result = runner.invoke(cli, ["config", "init", "--path", str(path)])

        assert result.exit_code == 0, result.output
        assert yaml.safe_load(path.read_text())["flag_threshold"] == 0.75

        result = runner.invoke(cli, ["config", "show", "--path", str(path)])
        assert result.exit_code == 0, result.output
        assert "flag_threshold" in result.stdout

    def test_init_refuses_overwrite(self, runner, clean_env):
        path = clean_env / "conf.yml"
        path.write_text("yield_every: 3\n")

        result = runner.invoke(cli, ["config", "init", "--path", str(path)], input="n\n")

        assert result.exit_code == 0
        assert path.read_text() == "yield_every: 3\n"

    def test_global_config_option(self, runner, files, clean_env):
        path = clean_env / "tight.yml"
        path.write_text("max_bulk_pairs: 1\n")

        result = runner.invoke(cli, [
            "--config", str(path), "bulk", str(files["original"].parent),
        ])
        assert result.exit_code == 2

    def test_invalid_config_file(self, runner, clean_env):
        path = clean_env / "bad.yml"
        path.write_text("flag_threshold: 3\n")

        result = runner.invoke(cli, ["--config", str(path), "config", "show"])
        assert result.exit_code == 2

    def test_string_override_rejected(self, runner, files, clean_env):
        path = clean_env / "bad.yml"
        path.write_text("languages:\n  python:\n    extra_drop: comment\n")

        result = runner.invoke(cli, [
            "--config", str(path), "fingerprint", str(files["original"]),
        ])
        assert result.exit_code == 2
        assert "languages.python.extra_drop" in result.output


class TestLogDirOption:
    """Test `structsim --log-dir`."""

    def test_writes_json_lines(self, runner, files, clean_env):
        log_dir = clean_env / "logs"
        try:
            result = runner.invoke(cli, [
                "-v", "--log-dir", str(log_dir),
                "analyze", str(files["original"]), "-c", str(files["renamed"]), "--json",
            ])
        finally:
            logger = logging.getLogger("structsim")
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)

        assert result.exit_code == 0, result.output
        log_files = list(log_dir.glob("structsim_*.jsonl"))
        assert len(log_files) == 1
        records = [json.loads(line) for line in log_files[0].read_text().splitlines()]
        assert any(record.get("operation") == "analyze" for record in records)
