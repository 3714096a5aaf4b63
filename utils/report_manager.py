import os
import shutil
from datetime import datetime
from typing import Dict, List, Any, Optional, Sequence

from utils.logger import get_logger

REPORT_PREFIX = "playwright-report_"
LATEST_LINK = "latest"


def _list_directories(parent: str, prefix: str = "") -> List[Dict[str, Any]]:
    """Child directories of ``parent`` (newest first), each with its mtime."""
    if not os.path.isdir(parent):
        return []

    entries = []
    for name in os.listdir(parent):
        path = os.path.join(parent, name)
        if os.path.islink(path) or not os.path.isdir(path) or not name.startswith(prefix):
            continue
        try:
            mtime = os.stat(path).st_mtime
        except OSError:
            get_logger().warning(f"Cannot stat directory: {path}")
            continue
        entries.append({"name": name, "path": path, "mtime": mtime})

    return sorted(entries, key=lambda entry: entry["mtime"], reverse=True)


def _remove_tree(path: str) -> bool:
    try:
        shutil.rmtree(path)
        return True
    except OSError as e:
        get_logger().error(f"Failed to delete {path}: {e}")
        return False


class ReportManager:
    """Timestamped test report directories under one base folder."""

    def __init__(self, reports_dir: str = "test-reports"):
        self.reports_dir = reports_dir
        self.logger = get_logger()

    def ensure_report_directory(self) -> None:
        os.makedirs(self.reports_dir, exist_ok=True)

    @staticmethod
    def report_dir_name(now: Optional[datetime] = None) -> str:
        now = now or datetime.now()
        return f"{REPORT_PREFIX}{now.strftime('%Y-%m-%d_%H-%M-%S')}"

    def create_report_directory(self, now: Optional[datetime] = None) -> str:
        """Create a fresh report directory and return its full path."""
        self.ensure_report_directory()
        report_path = os.path.join(self.reports_dir, self.report_dir_name(now))
        os.makedirs(report_path, exist_ok=True)
        return report_path

    def get_reports(self) -> List[Dict[str, Any]]:
        return _list_directories(self.reports_dir, prefix=REPORT_PREFIX)

    def prune(self, keep: int) -> List[str]:
        """Delete all but the newest ``keep`` reports; returns the deleted names."""
        reports = self.get_reports()
        self.logger.info(f"Found {len(reports)} test reports")

        deleted = []
        for report in reports[keep:]:
            if _remove_tree(report["path"]):
                deleted.append(report["name"])
                self.logger.info(f"Deleted old report: {report['name']}")

        self.logger.info(f"Kept the newest {min(len(reports), keep)} reports")
        return deleted

    def update_latest_link(self, report_path: str) -> Optional[str]:
        """Point ``<reports_dir>/latest`` at the given report."""
        link_path = os.path.join(self.reports_dir, LATEST_LINK)
        try:
            if os.path.islink(link_path) or os.path.isfile(link_path):
                os.unlink(link_path)
            os.symlink(os.path.basename(report_path), link_path)
        except OSError as e:
            self.logger.warning(f"Could not update latest report link: {e}")
            return None
        self.logger.info(f"Latest report link updated: {link_path}")
        return link_path


def clean_assets(assets_dir: str, projects: Sequence[str], keep: int = 5) -> Dict[str, int]:
    """Keep the newest ``keep`` run directories for each project's artifacts."""
    logger = get_logger()
    kept = {}
    for project in projects:
        runs = _list_directories(os.path.join(assets_dir, project))
        if not runs:
            continue
        for run in runs[keep:]:
            if _remove_tree(run["path"]):
                logger.info(f"Deleted old test results: {run['path']}")
        kept[project] = min(len(runs), keep)
        logger.info(f"{project}: kept {kept[project]} test results")
    return kept

