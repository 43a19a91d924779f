from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from tsaudit.infra.config import AppConfig
from tsaudit.infra.ffmpeg import get_ffmpeg_path, get_ffmpeg_version, get_ffprobe_path


@dataclass(frozen=True)
class DoctorCheck:
    name: str
    ok: bool
    detail: str


@dataclass(frozen=True)
class DoctorReport:
    checks: tuple[DoctorCheck, ...]

    @property
    def ok(self) -> bool:
        return all(check.ok for check in self.checks)


def _writable_dir_check(name: str, path: Path) -> DoctorCheck:
    if path.exists():
        ok = path.is_dir()
    else:
        ok = path.parent.exists()
    return DoctorCheck(name=name, ok=ok, detail=f"path={path}")


def collect_doctor_report(config: AppConfig) -> DoctorReport:
    ffmpeg_path = get_ffmpeg_path()
    version = get_ffmpeg_version() or "unknown"
    ffmpeg_check = DoctorCheck(
        name="ffmpeg",
        ok=ffmpeg_path is not None,
        detail=f"path={ffmpeg_path} version={version}",
    )
    ffprobe_path = get_ffprobe_path()
    ffprobe_check = DoctorCheck(
        name="ffprobe",
        ok=ffprobe_path is not None,
        detail=f"path={ffprobe_path}",
    )
    timestamp_weight, text_weight = config.transcript_weights
    edge_weight, duration_weight = config.timestamp_weights
    scoring_check = DoctorCheck(
        name="Scoring",
        ok=0.0 <= config.score_threshold <= 1.0,
        detail=(
            f"threshold={config.score_threshold} interval={config.time_interval_s}s "
            f"weights=timestamp:{timestamp_weight}/text:{text_weight} "
            f"edge:{edge_weight}/duration:{duration_weight}"
        ),
    )
    return DoctorReport(
        checks=(
            ffmpeg_check,
            ffprobe_check,
            _writable_dir_check("HuggingFace cache", config.hf_cache),
            _writable_dir_check("Content store", config.store_dir),
            scoring_check,
        ),
    )


def render_doctor_report(report: DoctorReport) -> str:
    header = "tsaudit doctor: OK" if report.ok else "tsaudit doctor: FAIL"
    lines = [header]
    for check in report.checks:
        status = "PASS" if check.ok else "FAIL"
        lines.append(f"- [{status}] {check.name}: {check.detail}")
    return "\n".join(lines)
