from __future__ import annotations

import json
import sys

import pytest

import tools.gap_report as gap_report


def test_gap_report_writes_json(monkeypatch, tmp_path, capsys):
    snap = tmp_path / "snapshot.json"
    snap.write_text(json.dumps({
        "progress": {"skillConfidenceLevels": {"system_design": 0.3, "git": 0.9}},
        "resume": {"extractedSkills": [{"skillName": "system design", "yearsExperience": 1}]},
    }), encoding="utf-8")
    out = tmp_path / "report.json"
    monkeypatch.setattr(sys, "argv", ["gap_report", str(snap), "--role", "Backend Engineer", "--out", str(out)])
    monkeypatch.chdir(tmp_path)

    gap_report.main()

    report = json.loads(out.read_text(encoding="utf-8"))
    assert report["targetRole"] == "Backend Engineer"
    opp = report["gaps"]["opportunities"][0]
    assert opp["skill"] == "system design"
    assert opp["current_level"] == 2.5
    assert report["resources"]["items"][0]["resource"]["title"] == "System Design Interview"
    assert "Wrote" in capsys.readouterr().out


def test_gap_report_missing_file(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(sys, "argv", ["gap_report", str(tmp_path / "nope.json")])
    with pytest.raises(SystemExit) as exc:
        gap_report.main()
    assert exc.value.code == 1
    assert "No such file" in capsys.readouterr().err
