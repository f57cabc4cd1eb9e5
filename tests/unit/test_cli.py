"""Unit tests for the command line client"""

import io
import json

import httpx
import pytest
from unittest.mock import patch
from pathlib import Path
from support_oss.cli import format_currency, format_number, main, parse_dependencies, read_dependencies
from support_oss.domain.exceptions import CuratedDataError
from support_oss.services.curated import CuratedImportResult

ANALYSIS = {
    "summary": {
        "total": 3,
        "found": 2,
        "not_found": 1,
        "by_category": {"critical": 1, "needs-support": 0, "stable": 1, "thriving": 0, "corporate": 1},
    },
    "budget": 50.0,
    "currency": "USD",
    "packages": [
        {
            "name": "is-odd",
            "found": True,
            "score": 27,
            "category": "critical",
            "signals": {"weekly_downloads": 450_000},
            "funding_sources": [{"platform": "github", "url": "https://github.com/sponsors/x", "verified": False}],
            "allocation": {"package_name": "is-odd", "percentage": 59.3, "suggested_amount": 29.65},
        },
        {
            "name": "left-pad",
            "found": False,
            "score": 50,
            "category": "stable",
            "allocation": {"package_name": "left-pad", "percentage": 40.7, "suggested_amount": 20.35},
        },
        {
            "name": "react",
            "found": True,
            "score": 95,
            "category": "corporate",
            "allocation": {"package_name": "react", "percentage": 0.0, "suggested_amount": 0.0},
        },
    ],
}


def test_parse_package_json_merges_dev_dependencies():
    """Test dependencies and devDependencies are merged"""
    content = json.dumps(
        {
            "name": "my-app",
            "dependencies": {"express": "^4.18.0", "lodash": "^4.17.0"},
            "devDependencies": {"jest": "^29.0.0", "lodash": "^4.17.21"},
        }
    )

    assert parse_dependencies(content) == {"express": "^4.18.0", "lodash": "^4.17.21", "jest": "^29.0.0"}


def test_parse_bare_mapping():
    """Test a plain name -> range object is accepted"""
    assert parse_dependencies('{"chalk": "^5.0.0"}') == {"chalk": "^5.0.0"}


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        "[1, 2]",
        '{"name": "app", "version": {"major": 1}}',
        '{"dependencies": ["react"]}',
        '{"dependencies": {"react": "^18.0.0"}, "devDependencies": "jest"}',
    ],
)
def test_parse_rejects_unusable_input(content):
    """Test invalid JSON and unrelated shapes yield nothing"""
    assert parse_dependencies(content) is None


def test_read_dependencies_from_file(tmp_path):
    """Test reading an explicit package.json path"""
    path = tmp_path / "package.json"
    path.write_text(json.dumps({"dependencies": {"react": "^18.0.0"}}))

    assert read_dependencies(str(path)) == {"react": "^18.0.0"}
    assert read_dependencies(str(tmp_path / "missing.json")) is None


def test_read_dependencies_from_stdin():
    """Test "-" reads JSON from stdin"""
    with patch("sys.stdin", io.StringIO('{"dependencies": {"vue": "^3.4.0"}}')):
        assert read_dependencies("-") == {"vue": "^3.4.0"}


def test_formatters():
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(10, "EUR") == "EUR 10.00"
    assert format_number(999) == "999"
    assert format_number(45_000) == "45.0K"
    assert format_number(31_000_000) == "31.0M"


def test_analyze_posts_dependencies(tmp_path, capsys):
    """Test the analyze command calls the API and prints JSON"""
    path = tmp_path / "package.json"
    path.write_text(json.dumps({"dependencies": {"is-odd": "^3.0.0", "left-pad": "1.3.0", "react": "^18.0.0"}}))

    with patch("support_oss.cli.request_analysis", return_value=ANALYSIS) as request, patch("support_oss.cli.console"):
        exit_code = main(["analyze", str(path), "--budget", "50", "--json", "--api", "http://api.test"])

    assert exit_code == 0
    request.assert_called_once_with(
        "http://api.test",
        {"is-odd": "^3.0.0", "left-pad": "1.3.0", "react": "^18.0.0"},
        50.0,
    )
    assert json.loads(capsys.readouterr().out) == ANALYSIS


def test_analyze_renders_report(tmp_path):
    """Test the rich report lists needy packages and allocations"""
    path = tmp_path / "package.json"
    path.write_text(json.dumps({"dependencies": {"is-odd": "^3.0.0"}}))

    with patch("support_oss.cli.request_analysis", return_value=ANALYSIS), patch("support_oss.cli.console") as console:
        exit_code = main(["analyze", str(path)])

    assert exit_code == 0
    printed = " ".join(str(call.args[0]) for call in console.print.call_args_list if call.args)
    assert "Packages Needing Support" in printed
    assert "is-odd" in printed
    assert "Fund via: github" in printed
    assert "$29.65" in printed
    assert "left-pad" in printed


def test_analyze_without_dependencies(tmp_path):
    """Test a missing package.json exits with 1"""
    exit_code = main(["analyze", str(tmp_path / "package.json")])

    assert exit_code == 1


def test_analyze_api_unreachable(tmp_path):
    """Test connection errors exit with 1"""
    path = tmp_path / "package.json"
    path.write_text(json.dumps({"dependencies": {"react": "^18.0.0"}}))

    with patch("support_oss.cli.request_analysis", side_effect=httpx.ConnectError("refused")):
        exit_code = main(["analyze", str(path)])

    assert exit_code == 1


def test_analyze_api_error(tmp_path):
    """Test API error responses exit with 1"""
    path = tmp_path / "package.json"
    path.write_text(json.dumps({"dependencies": {"react": "^18.0.0"}}))
    request = httpx.Request("POST", "http://api.test/v1/analyze")
    response = httpx.Response(400, json={"detail": "Too many dependencies (max 500)"}, request=request)
    error = httpx.HTTPStatusError("Bad Request", request=request, response=response)

    with patch("support_oss.cli.request_analysis", side_effect=error):
        exit_code = main(["analyze", str(path)])

    assert exit_code == 1


def test_request_analysis_uses_api():
    """Test the request body sent to the analyze endpoint"""
    from support_oss.cli import request_analysis

    response = httpx.Response(200, json=ANALYSIS, request=httpx.Request("POST", "http://api.test/v1/analyze"))
    with patch("support_oss.cli.httpx.post", return_value=response) as post:
        assert request_analysis("http://api.test/", {"react": "^18.0.0"}, 25.0) == ANALYSIS

    post.assert_called_once_with(
        "http://api.test/v1/analyze",
        json={"dependencies": {"react": "^18.0.0"}, "budget": 25.0},
        timeout=30.0,
    )


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "analyze" in capsys.readouterr().out


@pytest.mark.parametrize("budget", ["nan", "inf", "-inf", "0", "-5", "ten"])
def test_analyze_rejects_invalid_budget(tmp_path, budget):
    """Test non-positive and non-finite budgets are argument errors"""
    with patch("support_oss.cli.request_analysis") as request, pytest.raises(SystemExit) as exc:
        main(["analyze", str(tmp_path / "package.json"), "--budget", budget])

    assert exc.value.code == 2
    request.assert_not_called()


def test_import_curated_runs_import(tmp_path):
    """Test import-curated passes both files to the import"""
    corporate = tmp_path / "corporate-backing.json"
    ai_disruption = tmp_path / "ai-disruption.json"

    with patch(
        "support_oss.cli.run_curated_import", return_value=CuratedImportResult(corporate=2, ai_disruption=1)
    ) as run_import, patch("support_oss.cli.console") as console:
        exit_code = main(["import-curated", "--corporate", str(corporate), "--ai-disruption", str(ai_disruption)])

    assert exit_code == 0
    run_import.assert_called_once_with(Path(corporate), Path(ai_disruption))
    printed = " ".join(str(call.args[0]) for call in console.print.call_args_list if call.args)
    assert "2[/cyan] packages updated" in printed
    assert "1[/cyan] packages flagged" in printed


def test_import_curated_single_file(tmp_path):
    corporate = tmp_path / "corporate-backing.json"

    with patch("support_oss.cli.run_curated_import", return_value=CuratedImportResult(1, 0)) as run_import, patch(
        "support_oss.cli.console"
    ):
        assert main(["import-curated", "--corporate", str(corporate)]) == 0

    run_import.assert_called_once_with(Path(corporate), None)


def test_import_curated_without_files():
    with patch("support_oss.cli.run_curated_import") as run_import, patch("support_oss.cli.console"):
        assert main(["import-curated"]) == 1

    run_import.assert_not_called()


@pytest.mark.parametrize(
    "error", [CuratedDataError('curated.json: expected an object with a "packages" list'), FileNotFoundError("missing")]
)
def test_import_curated_bad_file(tmp_path, error):
    """Test unreadable curated files exit with 1"""
    with patch("support_oss.cli.run_curated_import", side_effect=error), patch("support_oss.cli.console"):
        assert main(["import-curated", "--corporate", str(tmp_path / "curated.json")]) == 1
