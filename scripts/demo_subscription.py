#!/usr/bin/env python3
"""
Walk one employee through the lunch subscription lifecycle.

Creates a project and an employee, then runs:
  - subscribe Combo25 for 2026-01-05 .. 2026-01-16 (10 working days)
  - freeze the 2026-01-05 order ("sick")
  - deactivate on Saturday 2026-01-10

and prints the subscription and budget after each step.

Usage:
    python3 scripts/demo_subscription.py
    python3 scripts/demo_subscription.py --db-url postgresql://...
    python3 scripts/demo_subscription.py --budget 1000 --json-logs
"""

import argparse
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from uuid import uuid4

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

DB_URL = "sqlite:///:memory:"
TZ = "Asia/Dushanbe"


def _print_result(label, result) -> None:
    if not result.is_success:
        print(f"  {label}: REJECTED {result.error_code} - {result.message}")
        return
    print(f"  {label}: ok")


def _print_state(service, ops, employee_id, project_id) -> None:
    sub = service.get_subscription_for_employee(employee_id).value
    budget = ops.budget(project_id).value
    print(
        f"    status={sub.status} window={sub.start_date}..{sub.end_date} "
        f"total_days={sub.total_days} total_price={sub.total_price} "
        f"frozen={sub.frozen_days_count}"
    )
    print(f"    budget={budget.balance} {budget.currency_code} (available {budget.available})")


def main() -> int:
    parser = argparse.ArgumentParser(description="Lunch subscription lifecycle demo")
    parser.add_argument("--db-url", default=DB_URL, help="Database URL")
    parser.add_argument("--budget", default="1000", help="Initial project budget")
    parser.add_argument("--json-logs", action="store_true", help="Emit structured logs")
    args = parser.parse_args()

    from lunch_config import get_active_config
    from lunch_kernel.db.engine import create_tables, get_session, init_engine_from_url
    from lunch_kernel.db.immutability import register_immutability_listeners
    from lunch_kernel.domain.clock import DeterministicClock
    from lunch_kernel.logging_config import configure_logging
    from lunch_kernel.models import Employee, Project
    from lunch_services import FinancialOperations, SubscriptionService

    if args.json_logs:
        configure_logging()

    init_engine_from_url(args.db_url)
    create_tables()
    register_immutability_listeners()

    settings = get_active_config()
    clock = DeterministicClock()
    clock.set_local(date(2026, 1, 5), 8, 0, TZ)

    session = get_session()
    try:
        project = Project(id=uuid4(), name="Demo project", budget=Decimal(args.budget),
                          overdraft_limit=Decimal("0"), timezone=TZ)
        employee = Employee(id=uuid4(), full_name="Demo Employee", project_id=project.id)
        session.add_all([project, employee])
        session.commit()

        service = SubscriptionService(session, settings, clock)
        ops = FinancialOperations(session, settings, clock)

        print("Subscribe Combo25 2026-01-05..2026-01-16")
        _print_result("create", service.create_subscription(
            employee.id, "Combo25", date(2026, 1, 5), date(2026, 1, 16)))
        _print_state(service, ops, employee.id, project.id)

        print("Freeze 2026-01-05 (sick)")
        first = service.list_orders(employee.id, date(2026, 1, 5), date(2026, 1, 5)).value[0]
        _print_result("freeze", service.freeze_order(first.id, "sick"))
        _print_state(service, ops, employee.id, project.id)

        print("Deactivate on 2026-01-10")
        clock.set_local(date(2026, 1, 10), 9, 0, TZ)
        result = service.deactivate(employee.id)
        _print_result("deactivate", result)
        if result.is_success:
            print(f"    cancelled={result.value.cancelled_count} refund={result.value.refund_total}")
        _print_state(service, ops, employee.id, project.id)
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
