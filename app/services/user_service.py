"""
User service: identity sync and lookups for the User aggregate.

User rows mirror the identity provider: they are created or refreshed
from verified token claims the first time a user mutates something, and
are otherwise read-only here.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.identity import Identity, require_user_id
from app.models import User
from app.schemas import ActionResult
from app.services.actions import action

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def user_to_dict(user: User | None) -> dict | None:
    """Serialise a User ORM instance to a plain dict."""
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "image": user.image,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


# ---------------------------------------------------------------------------
# Identity sync
# ---------------------------------------------------------------------------

async def resolve_profile(db: AsyncSession, identity: Identity | None) -> User:
    """
    Return the caller's full profile as a User row.

    Raises ``Unauthorized`` when there is no identity.  The row is created
    from the token claims when missing, and its name / avatar are
    refreshed when the provider reports new values.
    """
    user_id = require_user_id(identity)
    user = await db.get(User, user_id)
    if user is None:
        user = User(id=user_id, name=identity.name, image=identity.image)
        db.add(user)
        await db.flush()
        logger.info("Synced new user %s from identity provider", user_id)
        return user

    changed = False
    if identity.name is not None and identity.name != user.name:
        user.name = identity.name
        changed = True
    if identity.image is not None and identity.image != user.image:
        user.image = identity.image
        changed = True
    if changed:
        await db.flush()
        logger.debug("Refreshed profile for user %s", user_id)
    return user


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

@action("An error occurred while loading the current user")
async def get_current_user(db: AsyncSession, identity: Identity | None) -> ActionResult:
    """
    Return the caller's profile.

    Read-only: a caller who has not been synced yet gets the profile
    carried by their verified claims, and no row is written.
    """
    user_id = require_user_id(identity)
    user = await db.get(User, user_id)
    if user is None:
        return ActionResult.ok(
            {"id": user_id, "name": identity.name, "image": identity.image, "created_at": None}
        )
    return ActionResult.ok(user_to_dict(user))
