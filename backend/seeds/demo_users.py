"""Seed definitions for demo accounts, one per role.
(Consumed by scripts/seed_users.py; single source of truth for local/demo data.)
"""

DEMO_USERS = [
    {'name': 'Admin', 'email': 'admin@hotel.local', 'role': 'admin', 'password': 'Admin123'},
    {'name': 'Manager', 'email': 'manager@hotel.local', 'role': 'manager', 'password': 'Manager123'},
    {'name': 'Front Desk', 'email': 'staff@hotel.local', 'role': 'staff', 'password': 'Staff123'},
    {'name': 'Technician', 'email': 'tech@hotel.local', 'role': 'technician', 'password': 'Tech1234'},
]
