"""CLI tool for admin operations.

Usage:
    python -m trigger_router.cli init-db
    python -m trigger_router.cli calculate '{"currentPrice": 100, "buyPrice": 95, "amountToSell": 100}'
    python -m trigger_router.cli sweep-expired
"""

import json
import sys

from pydantic import ValidationError

from trigger_router.config import settings
from trigger_router.database import create_db_engine
from trigger_router.schemas.order import CalculationRequestIn, OrderCalculationRead
from trigger_router.services import order_calculator
from trigger_router.services.order_calculator import InvalidParameter
from trigger_router.services.order_store import OrderStore
from trigger_router.utils.logging import setup_logging


def _store() -> OrderStore:
    return OrderStore(create_db_engine(settings.database_url))


def init_db():
    """Create any missing tables."""
    _store().create_tables()
    print("Database initialised.")


def calculate(payload: str) -> int:
    """Print the legs for a JSON calculation request. Returns the exit code."""
    try:
        request = CalculationRequestIn.model_validate_json(payload)
        calc = order_calculator.calculate(request.to_request())
    except ValidationError as e:
        print(f"Invalid request: {e}", file=sys.stderr)
        return 2
    except InvalidParameter as e:
        print(f"Rejected ({e.field}, {e.rule}): {e}", file=sys.stderr)
        return 1

    body = OrderCalculationRead.from_calculation(calc).model_dump(mode="json", by_alias=True)
    print(json.dumps(body, indent=2))
    return 0


def sweep_expired():
    """Mark PENDING orders past their expiry as EXPIRED."""
    store = _store()
    store.create_tables()
    count = store.expire_stale()
    print(f"Expired {count} order(s).")


def main(argv: list[str] | None = None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("Usage: python -m trigger_router.cli <command>")
        print("Commands: init-db, calculate <json>, sweep-expired")
        sys.exit(1)

    setup_logging()
    command = argv[0]
    if command == "init-db":
        init_db()
    elif command == "calculate":
        # Request JSON from the argument, or stdin when omitted
        payload = argv[1] if len(argv) > 1 else sys.stdin.read()
        sys.exit(calculate(payload))
    elif command == "sweep-expired":
        sweep_expired()
    else:
        print(f"Unknown command: {command}")
        sys.exit(1)


if __name__ == "__main__":
    main()
