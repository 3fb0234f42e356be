"""System checks for the compiled-in RBAC catalog."""

import re

from django.core.checks import Error, register

from access_control.models import PrivilegeCategory

CODE_PATTERN = re.compile(r"^[A-Z_]+$")


@register()
def default_catalog_is_consistent(app_configs, **kwargs):
    """Ensure the seeder's catalog can be applied without errors.

    Seeding failures abort startup, so a broken catalog is reported here
    first: malformed or duplicate codes, unknown categories, and role
    definitions that reference privileges outside the catalog.
    """
    errors: list[Error] = []

    # Import here to avoid model access at module load time.
    from access_control.seeding import ALL_PRIVILEGES, DEFAULT_PRIVILEGES, DEFAULT_ROLES

    seen: set[str] = set()
    for code, _name, _description, category in DEFAULT_PRIVILEGES:
        if not CODE_PATTERN.match(code) or code in seen:
            errors.append(
                Error(
                    f"Default privilege code {code!r} is malformed or duplicated.",
                    id="access_control.E001",
                )
            )
        if category not in PrivilegeCategory.values:
            errors.append(
                Error(
                    f"Default privilege {code!r} has unknown category {category!r}.",
                    id="access_control.E002",
                )
            )
        seen.add(code)

    for definition in DEFAULT_ROLES:
        codes = definition["privileges"]
        if codes is ALL_PRIVILEGES:
            continue
        unknown = sorted(set(codes) - seen)
        if unknown:
            errors.append(
                Error(
                    f"Default role {definition['code']} references unknown privileges: "
                    f"{', '.join(unknown)}.",
                    id="access_control.E003",
                )
            )

    return errors
