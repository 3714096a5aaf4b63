#!/usr/bin/env python3

import argparse
import os
import subprocess
import sys
from datetime import datetime

from dotenv import load_dotenv

from core.auth import AuthExchangeError
from core.auth_state import VisibilityTimeoutError, refresh_auth_state
from core.browser import BrowserSession
from utils.config import ConfigurationError, load_config, load_suite_config
from utils.logger import setup_logger
from utils.report_manager import ReportManager, clean_assets


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(description="Vehicle rental end-to-end test suite")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    auth_parser = subparsers.add_parser("auth", help="Log the test user in and save the browser state")
    auth_parser.add_argument("--output", type=str, default=None, help="Auth state file (default: AUTH_STATE_PATH or auth/user.json)")
    auth_parser.add_argument("--headed", action="store_true", help="Show the browser window")

    subparsers.add_parser("run", help="Run the suite into a timestamped report directory; unknown arguments go to pytest")

    clean_reports_parser = subparsers.add_parser("clean-reports", help="Keep only the newest test reports")
    clean_reports_parser.add_argument("--keep", type=int, default=None, help="Number of reports to keep")

    subparsers.add_parser("clean-assets", help="Keep only the newest artifact runs per project")

    args, extra = parser.parse_known_args(argv)
    if extra and args.command != "run":
        parser.error(f"unrecognized arguments: {' '.join(extra)}")
    args.pytest_args = extra
    return args


def run_auth(args, logger) -> int:
    config = load_suite_config(require_auth=True)
    if args.headed:
        config.settings["browser"]["headless"] = False

    timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    debug_dir = os.path.join(config.settings["reports"]["assets_dir"], "setup", timestamp)

    with BrowserSession.from_config(config) as session:
        path = refresh_auth_state(config, lambda: session, path=args.output, debug_dir=debug_dir)

    logger.info(f"Auth state ready at {path}")
    return 0


def run_suite(args, settings, logger) -> int:
    reports = settings["reports"]
    manager = ReportManager(reports["reports_dir"])
    report_path = manager.create_report_directory()

    env = os.environ.copy()
    env["E2E_RUN"] = "1"
    env["E2E_ARTIFACTS_DIR"] = os.path.join(report_path, "artifacts")

    pytest_args = [a for a in args.pytest_args if a != "--"] or ["tests/e2e"]
    command = [sys.executable, "-m", "pytest", f"--junitxml={os.path.join(report_path, 'junit.xml')}"] + pytest_args

    logger.info(f"Report will be saved to: {report_path}")
    logger.info(f"Running: {' '.join(command)}")
    exit_code = subprocess.call(command, env=env)
    logger.info(f"Test run finished with exit code {exit_code}")

    manager.prune(reports["keep_on_run"])
    manager.update_latest_link(report_path)
    return exit_code


def main(argv=None):
    load_dotenv()
    args = parse_arguments(argv)
    logger = setup_logger("DEBUG" if args.verbose else None)

    try:
        settings = load_config()
        reports = settings["reports"]

        if args.command == "auth":
            return run_auth(args, logger)
        if args.command == "run":
            return run_suite(args, settings, logger)
        if args.command == "clean-reports":
            keep = args.keep if args.keep is not None else reports["keep_on_clean"]
            ReportManager(reports["reports_dir"]).prune(keep)
            return 0
        if args.command == "clean-assets":
            clean_assets(reports["assets_dir"], reports["asset_projects"], reports["keep_assets"])
            return 0
    except ConfigurationError as e:
        logger.error(f"Configuration error: {str(e)}")
        return 2
    except (AuthExchangeError, VisibilityTimeoutError) as e:
        logger.error(f"Authentication setup failed: {str(e)}")
        return 1

    return 1


if __name__ == "__main__":
    sys.exit(main())
