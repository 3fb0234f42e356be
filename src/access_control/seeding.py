"""Default privilege catalog and system roles, and the bootstrap seeder.

``seed_roles_and_privileges`` only ever inserts or refreshes: missing
privileges are added, existing ones are left as administrators edited
them, and each system role's privilege set is recomputed from the
catalog so new privileges reach the administrator role automatically.
"""

import logging

from django.conf import settings

from .models import PrivilegeCategory
from .registry import PrivilegeRegistry, RoleRegistry

logger = logging.getLogger(__name__)

C = PrivilegeCategory

DEFAULT_PRIVILEGES = [
    # User management
    ("VIEW_USERS", "View Users", "Can view user information and lists", C.USER_MANAGEMENT),
    ("CREATE_USERS", "Create Users", "Can create new users in the system", C.USER_MANAGEMENT),
    ("EDIT_USERS", "Edit Users", "Can modify existing user information", C.USER_MANAGEMENT),
    ("DELETE_USERS", "Delete Users", "Can remove users from the system", C.USER_MANAGEMENT),
    # Inventory
    ("VIEW_INVENTORY", "View Inventory", "Can view drug inventory and stock levels", C.INVENTORY),
    ("MANAGE_INVENTORY", "Manage Inventory", "Can add, edit, and remove inventory items", C.INVENTORY),
    ("ADJUST_STOCK", "Adjust Stock", "Can adjust stock quantities and manage stock movements", C.INVENTORY),
    # Sales
    ("VIEW_SALES", "View Sales", "Can view sales records and transactions", C.SALES),
    ("CREATE_SALES", "Create Sales", "Can create new sales transactions", C.SALES),
    ("MANAGE_SALES", "Manage Sales", "Can edit and manage sales transactions", C.SALES),
    # Prescriptions
    ("VIEW_PRESCRIPTIONS", "View Prescriptions", "Can view prescription information", C.PRESCRIPTIONS),
    ("MANAGE_PRESCRIPTIONS", "Manage Prescriptions", "Can create, edit, and manage prescriptions", C.PRESCRIPTIONS),
    (
        "DISPENSE_MEDICATIONS",
        "Dispense Medications",
        "Can dispense medications and update prescription status",
        C.PRESCRIPTIONS,
    ),
    # Reports
    ("VIEW_REPORTS", "View Reports", "Can view system reports and analytics", C.REPORTS),
    ("GENERATE_REPORTS", "Generate Reports", "Can generate and export reports", C.REPORTS),
    # Stores
    ("VIEW_STORES", "View Stores", "Can view store information and lists", C.STORE_MANAGEMENT),
    ("CREATE_STORES", "Create Stores", "Can create new stores in the system", C.STORE_MANAGEMENT),
    ("EDIT_STORES", "Edit Stores", "Can modify existing store information", C.STORE_MANAGEMENT),
    ("DELETE_STORES", "Delete Stores", "Can remove stores from the system", C.STORE_MANAGEMENT),
    # Drugs
    ("VIEW_DRUGS", "View Drugs", "Can view drug information and lists", C.DRUG_MANAGEMENT),
    ("CREATE_DRUGS", "Create Drugs", "Can create new drugs in the system", C.DRUG_MANAGEMENT),
    ("EDIT_DRUGS", "Edit Drugs", "Can modify existing drug information", C.DRUG_MANAGEMENT),
    ("DELETE_DRUGS", "Delete Drugs", "Can remove drugs from the system", C.DRUG_MANAGEMENT),
    # System
    ("SYSTEM_SETTINGS", "System Settings", "Can access and modify system settings", C.SYSTEM),
    (
        "DATABASE_MANAGEMENT",
        "Database Management",
        "Can perform database operations and maintenance",
        C.SYSTEM,
    ),
]

ALL_PRIVILEGES = None  # marker: the role receives every catalog privilege

DEFAULT_ROLES = [
    {
        "code": "ADMINISTRATOR",
        "name": "Administrator",
        "description": (
            "Full system access with all privileges. Can manage users, roles, privileges, "
            "system settings, and access all features."
        ),
        "privileges": ALL_PRIVILEGES,
    },
    {
        "code": "PHARMACIST",
        "name": "Pharmacist",
        "description": (
            "Licensed pharmacist with medication and inventory management privileges. Can manage "
            "prescriptions, dispense medications, manage inventory, create sales, and generate reports."
        ),
        "privileges": [
            "VIEW_USERS",
            "VIEW_INVENTORY",
            "MANAGE_INVENTORY",
            "ADJUST_STOCK",
            "VIEW_SALES",
            "CREATE_SALES",
            "MANAGE_SALES",
            "VIEW_PRESCRIPTIONS",
            "MANAGE_PRESCRIPTIONS",
            "DISPENSE_MEDICATIONS",
            "VIEW_REPORTS",
            "GENERATE_REPORTS",
            "VIEW_STORES",
            "VIEW_DRUGS",
            "CREATE_DRUGS",
            "EDIT_DRUGS",
        ],
    },
    {
        "code": "STORE_MANAGER",
        "name": "Store Manager",
        "description": (
            "Store-level manager overseeing operations, staff, and business performance. Can manage "
            "inventory, sales, prescriptions, users within their store, and generate reports."
        ),
        "privileges": [
            "VIEW_USERS",
            "CREATE_USERS",
            "EDIT_USERS",
            "VIEW_INVENTORY",
            "MANAGE_INVENTORY",
            "ADJUST_STOCK",
            "VIEW_SALES",
            "CREATE_SALES",
            "MANAGE_SALES",
            "VIEW_PRESCRIPTIONS",
            "MANAGE_PRESCRIPTIONS",
            "DISPENSE_MEDICATIONS",
            "VIEW_REPORTS",
            "GENERATE_REPORTS",
            "VIEW_STORES",
            "CREATE_STORES",
            "EDIT_STORES",
            "VIEW_DRUGS",
            "CREATE_DRUGS",
            "EDIT_DRUGS",
        ],
    },
    {
        "code": "CASHIER",
        "name": "Cashier",
        "description": (
            "Front-line staff responsible for sales transactions and customer service. Can create "
            "sales, view inventory, view prescriptions, and view basic reports."
        ),
        "privileges": [
            "VIEW_INVENTORY",
            "VIEW_SALES",
            "CREATE_SALES",
            "VIEW_PRESCRIPTIONS",
            "VIEW_REPORTS",
            "VIEW_STORES",
            "VIEW_DRUGS",
        ],
    },
]


class SeedingError(Exception):
    """Seeding failed; the process must not start serving."""


def seed_privileges(privileges: PrivilegeRegistry | None = None, catalog=DEFAULT_PRIVILEGES) -> dict:
    """Register every catalog privilege and return a code -> Privilege map."""
    privileges = privileges or PrivilegeRegistry()
    by_code = {}
    for code, name, description, category in catalog:
        privilege, _ = privileges.register(code, name, description, category)
        by_code[code] = privilege
    return by_code


def seed_roles(by_code: dict, roles: RoleRegistry | None = None, definitions=DEFAULT_ROLES) -> dict:
    """Upsert every system role with its privilege ids and return a code -> Role map.

    Roles marked ``ALL_PRIVILEGES`` receive every registered privilege,
    including ones added by administrators outside the catalog.
    """
    roles = roles or RoleRegistry()
    all_ids = PrivilegeRegistry().all_ids()
    seeded = {}
    for definition in definitions:
        codes = definition["privileges"]
        if codes is ALL_PRIVILEGES:
            privilege_ids = all_ids
        else:
            privilege_ids = [by_code[code].pk for code in codes]
        role, _ = roles.upsert_by_code(
            definition["code"],
            definition["name"],
            definition["description"],
            privilege_ids,
            is_system=True,
        )
        seeded[role.code] = role
    return seeded


def seed_roles_and_privileges() -> tuple[dict, dict]:
    """Populate the privilege catalog and system roles.

    Safe to run on every start and concurrently with traffic. Any error
    is re-raised as ``SeedingError``.
    """
    logger.info("Starting to seed roles and privileges...")
    try:
        by_code = seed_privileges()
        roles = seed_roles(by_code)
    except Exception as exc:
        logger.exception("Error seeding roles and privileges")
        raise SeedingError("Seeding roles and privileges failed") from exc
    logger.info("Successfully seeded %d privileges and %d roles", len(by_code), len(roles))
    return by_code, roles


def seed_on_migrate(sender, using=None, **kwargs) -> None:
    """``post_migrate`` receiver; runs once, for this app only."""
    if not getattr(settings, "AUTHZ_SEED_ON_MIGRATE", True):
        return
    seed_roles_and_privileges()


__all__ = [
    "DEFAULT_PRIVILEGES",
    "DEFAULT_ROLES",
    "SeedingError",
    "seed_on_migrate",
    "seed_privileges",
    "seed_roles",
    "seed_roles_and_privileges",
]
