from __future__ import annotations
import argparse, json, sys
from pathlib import Path
from skillmap_core.config import load_config
from skillmap_core.reporting import build_report

def main():
    ap = argparse.ArgumentParser(description="Gap analysis + resource matching from a progress snapshot.")
    ap.add_argument("snapshot", help="JSON with skillConfidenceLevels and optional resume/responses")
    ap.add_argument("--role", default=None)
    ap.add_argument("--out", default=None, help="write the report here instead of stdout")
    a = ap.parse_args()
    p = Path(a.snapshot)
    if not p.exists():
        print(f"No such file: {p}", file=sys.stderr); sys.exit(1)
    snap = json.loads(p.read_text(encoding="utf-8"))
    progress = snap.get("progress") or snap
    report = build_report(
        progress.get("skillConfidenceLevels") or progress.get("skillConfidences") or {},
        a.role or snap.get("targetRole"),
        snap.get("resume"),
        snap.get("responses"),
        load_config(),
    )
    body = json.dumps(report, indent=2, ensure_ascii=False)
    if a.out:
        Path(a.out).write_text(body, encoding="utf-8"); print(f"Wrote {a.out}")
    else:
        print(body)

if __name__ == "__main__":
    main()
