#!/usr/bin/env python3
"""Validate local hall reservation environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from datetime import date, time
from importlib.metadata import version
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.domain.errors import ReservationConflictError
from backend.domain.models import HallStatus, Role, TimeWindow
from backend.repository.data_repository import DataRepository
from backend.services.availability_service import AvailabilityProjector
from backend.services.lifecycle_service import ReservationLifecycleService
from backend.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="halls-env-")

    # CHECK 1: Python version >= 3.11
    if sys.version_info >= (3, 11):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.11",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable with versions
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("pandas", "pandas"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except Exception as exc:  # pragma: no cover - runtime guard
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "halls_validation.db",
        )
        repository = DataRepository(validation_settings)

        # CHECK 3: Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4: Default hall catalog
        expected_halls = len(validation_settings.default_halls)
        try:
            repository.seed_default_halls()
            seeded = len(repository.list_halls())
            if seeded != expected_halls:
                raise RuntimeError(f"expected {expected_halls} halls, got {seeded}")
            ok, line = _print_result(f"Hall catalog: {seeded} halls", True)
        except Exception as exc:
            ok, line = _print_result("Hall catalog", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5: Club request blocked by pending faculty request
        lifecycle = ReservationLifecycleService(
            repository=repository,
            settings=validation_settings,
        )
        projector = AvailabilityProjector(repository=repository, settings=validation_settings)
        try:
            hall_id = repository.list_halls()[0].hall_id
            window = TimeWindow(date(2030, 1, 15), date(2030, 1, 15), time(10), time(12))
            faculty_request = lifecycle.create_request(
                requester_id="faculty-check",
                role=Role.FACULTY,
                hall_ids=[hall_id],
                window=window,
                purpose="Environment check seminar",
                attendee_count=10,
            )
            try:
                lifecycle.create_request(
                    requester_id="club-check",
                    role=Role.CLUB,
                    hall_ids=[hall_id],
                    window=window,
                    purpose="Environment check meetup",
                    attendee_count=10,
                )
                raise RuntimeError("club request was not blocked by pending faculty request")
            except ReservationConflictError:
                pass
            lifecycle.approve_request(faculty_request.request_id)
            projected = projector.day_status([hall_id], window.start_date)[hall_id].status
            if projected is not HallStatus.BOOKED:
                raise RuntimeError(f"expected booked status, got {projected.value}")
            ok, line = _print_result("Conflict scenario", True)
        except Exception as exc:
            ok, line = _print_result("Conflict scenario", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Hall Reservation Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
