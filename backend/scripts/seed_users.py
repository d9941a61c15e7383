#!/usr/bin/env python
"""Idempotent seed script for demo accounts (one per role).

Usage:
    python backend/scripts/seed_users.py            # seed normally
    python backend/scripts/seed_users.py --show     # print users with their capabilities
    python backend/scripts/seed_users.py --dry-run  # run logic then rollback (no DB changes)
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import select

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from hoteldesk import create_app, get_db  # type: ignore
from hoteldesk.models.user import Base, User
from hoteldesk.constants.permissions import ALL_ROLES
from hoteldesk.services.policy import resolve
from seeds.demo_users import DEMO_USERS


def ensure_users(session, accounts=DEMO_USERS):
    existing = {u.email for u in session.execute(select(User)).scalars().all()}
    created = 0
    for acct in accounts:
        if acct['role'] not in ALL_ROLES:
            print(f"[WARN] Skipping {acct['email']}: unknown role {acct['role']}")
            continue
        if acct['email'] in existing:
            continue
        user = User(name=acct['name'], email=acct['email'], role=acct['role'], password_hash='')
        user.set_password(os.getenv('SEED_PASSWORD') or acct['password'])
        session.add(user)
        created += 1
    session.flush()
    return created


def print_user_summary(session):
    rows = session.execute(select(User).order_by(User.id)).scalars().all()
    if not rows:
        print("[INFO] No users present.")
        return
    email_w = max(len(u.email) for u in rows)
    print(f"{'Email'.ljust(email_w)} | Role       | Granted capabilities")
    print('-' * (email_w + 40))
    for u in rows:
        granted = [k for k, v in resolve(u.role).as_dict().items() if v]
        print(f"{u.email.ljust(email_w)} | {u.role.ljust(10)} | {len(granted)}")


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed demo accounts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_users.py\n  dry run: seed_users.py --dry-run\n  show users: seed_users.py --show\n""")
    )
    p.add_argument('--show', action='store_true', help='Print users and capability counts after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app()
    with app.app_context():
        session = get_db()
        # Lightweight fallback if migrations not run yet; in real env prefer alembic upgrade
        Base.metadata.create_all(session.get_bind())
        try:
            created = ensure_users(session)
            if args.dry_run:
                session.rollback()
                print(f"[DRY-RUN] (rolled back) Users would create: {created}")
            else:
                session.commit()
                print(f"[DONE] Users created: {created}")
            if args.show:
                print_user_summary(session)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

if __name__ == '__main__':
    main()
