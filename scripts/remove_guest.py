"""Permanently remove a guest and everything recorded about their visits.

Override audit rows are kept.

Run from the project root:
    python -m scripts.remove_guest <guest-email-or-id>
"""

import argparse
import asyncio
import sys
import uuid
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import select

from visitgate.database import engine, session_scope
from visitgate.errors import AdmissionError
from visitgate.models.guest import Guest
from visitgate.services.guests import normalize_email, purge_guest


async def remove(identifier: str) -> int:
    try:
        async with session_scope() as session:
            try:
                guest_id = uuid.UUID(identifier)
            except ValueError:
                result = await session.execute(select(Guest.id).where(Guest.email == normalize_email(identifier)))
                guest_id = result.scalar_one_or_none()
                if guest_id is None:
                    print(f"❌ No guest with email {identifier}")
                    return 1
            summary = await purge_guest(session, guest_id)
    except AdmissionError as exc:
        print(f"❌ {exc.message}")
        return 1
    finally:
        await engine.dispose()

    print(f"✅ Removed guest {guest_id}")
    print(f"   Invitations: {summary.invitations}")
    print(f"   Visits:      {summary.visits}")
    print(f"   Acceptances: {summary.acceptances}")
    print(f"   Discounts:   {summary.discounts}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("guest", help="guest email address or UUID")
    args = parser.parse_args()
    sys.exit(asyncio.run(remove(args.guest)))


if __name__ == "__main__":
    main()
