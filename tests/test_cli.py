"""Tests for the release confidence CLI."""

import json

import pytest

from agents import release_confidence_agent as cli
from configs.config import Config
from utils.diff_models import ReleaseData


@pytest.fixture
def release_file(tmp_path, make_comparison):
    data = ReleaseData(comparisons=[make_comparison({"docs/guide.md": 200, "db/schema.sql": 200})])
    path = tmp_path / "release.json"
    path.write_text(data.model_dump_json())
    return path


@pytest.fixture
def bedrock_provider(monkeypatch):
    monkeypatch.setattr(Config, "MODEL_PROVIDER", "bedrock")


def run(argv):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    return exc_info.value.code


def test_classify(capsys):
    assert run(["classify", "db/schema.sql", "README.md", "src/main.go"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["CRITICAL\tdb/schema.sql", "LOW\tREADME.md", "MEDIUM\tsrc/main.go"]


class TestTruncateCommand:
    def test_json(self, release_file, capsys):
        assert run(["truncate", "--input", str(release_file), "--level", "low", "--json"]) == 0
        metadata = json.loads(capsys.readouterr().out)
        assert metadata["level"] == "low"
        assert metadata["total_files"] == 2
        assert metadata["truncated_files_list"] == ["docs/guide.md"]

    def test_text(self, release_file, capsys):
        assert run(["truncate", "--input", str(release_file), "--level", "EXTREME"]) == 0
        out = capsys.readouterr().out
        assert "Truncation level: extreme" in out
        assert "  - docs/guide.md" in out
        assert "... [192 lines omitted] ..." in out

    def test_unknown_level(self, release_file, capsys):
        assert run(["truncate", "--input", str(release_file), "--level", "aggressive"]) == 1
        assert "Unknown truncation level" in capsys.readouterr().err

    def test_missing_input(self, tmp_path, capsys):
        assert run(["truncate", "--input", str(tmp_path / "nope.json"), "--level", "low"]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_directory_as_input(self, tmp_path, capsys):
        assert run(["truncate", "--input", str(tmp_path), "--level", "low"]) == 1
        assert "Error: Could not read" in capsys.readouterr().err

    def test_invalid_input(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"comparisons": [{"files": []}]}))
        assert run(["truncate", "--input", str(path), "--level", "low"]) == 1
        assert "Invalid release data" in capsys.readouterr().err


class TestAnalyzeCommand:
    def test_success_with_truncation(self, release_file, fake_client, overflow_error, monkeypatch,
                                     bedrock_provider, capsys, tmp_path):
        client = fake_client([overflow_error, '{"score": 82}'])
        monkeypatch.setattr(cli, "new_client", lambda: client)

        assert run(["analyze", "--input", str(release_file), "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["response"] == '{"score": 82}'
        assert payload["attempts"] == 2
        assert payload["level"] == "low"
        assert payload["truncation"]["files_truncated"] == 1

        audit = (tmp_path / "audit" / "analysis.audit.log").read_text().splitlines()
        record = json.loads(audit[-1])
        assert record["result"] == "success"
        assert record["attempts"] == 2
        assert record["truncation"]["level"] == "low"
        assert record["level"] == "low"

    def test_exhausted(self, release_file, fake_client, overflow_error, monkeypatch, bedrock_provider, capsys, tmp_path):
        monkeypatch.setattr(cli, "new_client", lambda: fake_client([overflow_error]))

        assert run(["analyze", "--input", str(release_file)]) == 1
        assert "even with extreme truncation" in capsys.readouterr().err
        record = json.loads((tmp_path / "audit" / "analysis.audit.log").read_text().splitlines()[-1])
        assert record["result"] == "failure"
        assert record["error_code"] == "EXHAUSTED"
        assert record["attempts"] == 5
        assert record["level"] == "extreme"

    def test_no_audit(self, release_file, fake_client, monkeypatch, bedrock_provider, capsys, tmp_path):
        monkeypatch.setattr(cli, "new_client", lambda: fake_client(["plain response"]))

        assert run(["analyze", "--input", str(release_file), "--no-audit"]) == 0
        assert capsys.readouterr().out.strip() == "plain response"
        assert not (tmp_path / "audit").exists()

    def test_missing_system_prompt(self, release_file, monkeypatch, bedrock_provider, capsys, tmp_path):
        monkeypatch.setattr(Config, "SYSTEM_PROMPT_TEMPLATE", str(tmp_path / "absent" / "system.prompt"))
        assert run(["analyze", "--input", str(release_file)]) == 1
        err = capsys.readouterr().err
        assert "Error: File not found" in err
        assert "system.prompt" in err
        assert "Traceback" not in err

    def test_invalid_configuration(self, release_file, monkeypatch, capsys):
        monkeypatch.setattr(Config, "MODEL_PROVIDER", "gemini")
        monkeypatch.setattr(Config, "MODEL_API", "")
        assert run(["analyze", "--input", str(release_file)]) == 1
        assert "MODEL_API is required" in capsys.readouterr().err
