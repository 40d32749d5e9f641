from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List


def _extra_formats(cfg: dict | None) -> List[str]:
    if not isinstance(cfg, dict):
        return []
    plotting = cfg.get("plotting")
    fmts = plotting.get("plot_save_formats") if isinstance(plotting, dict) else None
    if not fmts:
        return []
    if isinstance(fmts, str):
        return [fmts]
    return list(fmts)


def get_targets(cfg: dict | None, stem: str | os.PathLike[str]) -> Dict[str, Path]:
    """Return chart paths keyed by lower-case extension.

    The suffix of ``stem`` (``pdf`` when it has none) comes first; extra
    formats listed under ``plotting.plot_save_formats`` are written next
    to it with the same base name.  The parent directory is created.
    """

    base_path = Path(stem)
    base_path.parent.mkdir(parents=True, exist_ok=True)
    base = base_path.with_suffix("")

    targets: Dict[str, Path] = {}
    for fmt in [base_path.suffix or "pdf", *_extra_formats(cfg)]:
        clean = str(fmt).strip().lstrip(".")
        if clean and clean.lower() not in targets:
            targets[clean.lower()] = base.with_suffix(f".{clean}")
    return targets
