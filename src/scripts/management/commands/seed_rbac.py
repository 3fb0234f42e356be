"""Seed the privilege catalog, system roles, and optional demo users."""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from access_control.seeding import SeedingError, seed_roles_and_privileges
from authentication.managers import UserManager

DEMO_USERS = [
    # email, role code, store id
    ("admin@example.com", "ADMINISTRATOR", None),
    ("pharmacist@example.com", "PHARMACIST", "store-001"),
    ("manager@example.com", "STORE_MANAGER", "store-001"),
    ("cashier@example.com", "CASHIER", "store-001"),
]


class Command(BaseCommand):
    """Run the bootstrap seeder outside of ``migrate``."""

    help = (
        "Register the default privileges and upsert the system roles. "
        "Safe to run repeatedly. Use --with-demo-users to add one user per role."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--with-demo-users",
            action="store_true",
            help="Also create one demo user per system role (existing users are left alone).",
        )
        parser.add_argument(
            "--demo-password",
            default="ChangeMe123!",
            help="Password for newly created demo users.",
        )

    def handle(self, *args, **options):
        """Entrypoint for the management command."""
        self.stdout.write("Seeding roles and privileges...")
        try:
            privileges, roles = seed_roles_and_privileges()
        except SeedingError as exc:
            raise CommandError(f"{exc}: {exc.__cause__}") from exc

        for code, role in sorted(roles.items()):
            self.stdout.write(f"  {code}: {role.privileges.count()} privileges")

        if options.get("with_demo_users"):
            self._create_demo_users(roles, options["demo_password"])

        self.stdout.write(
            self.style.SUCCESS(f"Seeded {len(privileges)} privileges and {len(roles)} roles.")
        )

    def _create_demo_users(self, roles, password: str) -> None:
        """Create one user per system role for manual testing."""
        User = get_user_model()
        for email, role_code, store_id in DEMO_USERS:
            _, created = User.objects.get_or_create(
                email=email,
                defaults={
                    "role": roles[role_code],
                    "store_id": store_id,
                    "full_name": role_code.replace("_", " ").title(),
                    "password_hash": UserManager.hash_password(password),
                },
            )
            if created:
                self.stdout.write(f"  created demo user {email} ({role_code})")
