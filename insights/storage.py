from __future__ import annotations
from pathlib import Path
from .config import EXPORT_DIR

def _out_dir(out_dir: Path | None) -> Path:
    d = Path(out_dir) if out_dir is not None else EXPORT_DIR
    d.mkdir(parents=True, exist_ok=True)
    return d

def write_export(export_file, out_dir: Path | None = None) -> Path:
    p = _out_dir(out_dir) / export_file.filename
    p.write_text(export_file.content, encoding="utf-8")
    return p

def write_exports(files, out_dir: Path | None = None) -> list[Path]:
    return [write_export(f, out_dir) for f in files]
