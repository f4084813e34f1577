"""
Default rows every installation needs.

Idempotent: existing rows (matched by name) are left alone.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import ModuleSettings, all_capabilities
from app.features.groups.models import UserGroup
from app.features.item_details.models import ContainerType, ItemDetailType, PhysicalState, Unit
from app.features.users.auth import find_user
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)

ROOT_GROUP = "root"

DEFAULT_LOOKUPS = {
    Unit: ["g", "kg", "mg", "mL", "L"],
    ContainerType: ["Bottle", "Bag", "Box", "Cylinder", "Ampoule"],
    PhysicalState: ["Solid", "Liquid", "Gas"],
    ItemDetailType: ["Reagent", "Solvent", "Standard", "Consumable"],
}


async def seed_groups(db: AsyncSession, settings: ModuleSettings) -> dict[str, UserGroup]:
    """
    Create the root group (every capability) and the default group (none).

    Returns:
        Dictionary mapping group names to UserGroup objects
    """
    wanted = {
        ROOT_GROUP: ("Administrators", " ".join(all_capabilities(settings))),
        settings.default_user_group: ("Newly registered users", ""),
    }
    groups = {}
    for name, (note, permission) in wanted.items():
        group = await db.scalar(select(UserGroup).where(UserGroup.name == name))
        if group is None:
            group = UserGroup(name=name, note=note, permission=permission)
            db.add(group)
            log.info("Created group: %s", name)
        else:
            log.debug("Group '%s' already exists, skipping", name)
        groups[name] = group
    await db.flush()
    return groups


async def seed_admin(db: AsyncSession, group: UserGroup, name: str, password_hash: str) -> User:
    """Create the first administrator so that someone can sign in."""
    user = await find_user(db, name)
    if user is None:
        user = User(name=name, password=password_hash, group=group)
        db.add(user)
        await db.flush()
        log.info("Created administrator: %s", name)
    return user


async def seed_lookups(db: AsyncSession) -> None:
    """Create the default units, container types, physical states and detail types."""
    for model, names in DEFAULT_LOOKUPS.items():
        existing = set((await db.scalars(select(model.name))).all())
        for name in names:
            if name not in existing:
                db.add(model(name=name))
        log.info("Seeded %s", model.__tablename__)
    await db.flush()
