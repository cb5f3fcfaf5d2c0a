import calendar
import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime, time
from typing import Any
from uuid import UUID, uuid4

from coursebase.adapters.clock import SystemClock
from coursebase.core.lifecycle import parse_id
from coursebase.core.pagination import Page, PageParams, parse_page_params
from coursebase.domain.attributes import ProfileUpdate, UserListFilter, validate_attributes
from coursebase.domain.entities import RoleType, User
from coursebase.domain.errors import NotFoundError
from coursebase.domain.policy import require_role
from coursebase.ports.clock import ClockPort
from coursebase.ports.identity import VerifiedIdentity
from coursebase.ports.store import Clause, ContentStorePort, any_of, contains, eq, gte, lte
from coursebase.rules.models import Rules

logger = logging.getLogger(__name__)

COLLECTION = "users"
INVALID_USER_MESSAGE = "The specified user identifier is invalid."

RANGE_MONTHS = {
    "last_3_months": 3,
    "last_6_months": 6,
    "last_9_months": 9,
    "last_12_months": 12,
    "last_15_months": 15,
    "last_18_months": 18,
}


def months_before(moment: datetime, months: int) -> datetime:
    """Same day `months` earlier, clamped to the end of a shorter month."""
    year, month = divmod(moment.year * 12 + moment.month - 1 - months, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _day_bound(moment: datetime, at: time) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    day = moment.astimezone(UTC).date()
    return datetime.combine(day, at, tzinfo=UTC).isoformat(timespec="microseconds")


class UserDirectory:
    """
    Maps verified identities to internal users.

    Identities are keyed by email address. The directory never trusts a
    token for roles: those live only on the stored user.
    """

    def __init__(
        self, store: ContentStorePort, rules: Rules | None = None, clock: ClockPort | None = None
    ):
        self.store = store
        self.rules = rules or Rules()
        self.clock = clock or SystemClock()

    async def start_session(self, identity: VerifiedIdentity) -> User:
        """
        Return the user for `identity`, provisioning one on first sign-in.

        A stored `email_verified` flag only ever moves from false to true.
        """
        async with self.store.transaction() as session:
            doc = await session.find_one(COLLECTION, [eq("email_address", identity.email)])
            if doc is None:
                user_id = uuid4()
                language = self.rules.languages.default_code
                user = User(
                    id=user_id,
                    first_name=identity.first_name,
                    last_name=identity.last_name,
                    user_name=str(user_id),
                    picture_url=identity.picture_url,
                    email_address=identity.email,
                    email_verified=identity.verified,
                    roles=list(self.rules.access.default_roles),
                    status="active",
                    about="",
                    content_language_codes=[language],
                    display_language_code=language,
                )
                doc = await session.insert(COLLECTION, user.model_dump(mode="json"))
                logger.info("Provisioned user %s on first sign-in", doc["id"])
            elif identity.verified and not doc.get("email_verified"):
                doc = await session.update_one(
                    COLLECTION, [eq("id", doc["id"])], {"email_verified": True}
                )
        return User.model_validate(doc)

    async def find_by_email(self, email: str) -> User | None:
        doc = await self.store.find_one(COLLECTION, [eq("email_address", email)])
        return User.model_validate(doc) if doc else None

    async def authorize(self, identity: VerifiedIdentity, allowed_roles: Iterable[str] | None = None) -> User:
        """Resolve the caller to a user holding one of `allowed_roles`; Forbidden otherwise."""
        roles = list(allowed_roles) if allowed_roles is not None else self.rules.access.required_roles
        user = await self.find_by_email(identity.email)
        return require_role(user, roles)

    def require_role(self, user: User | None, allowed_roles: Iterable[str]) -> User:
        return require_role(user, allowed_roles)

    async def get_user(self, user_id: UUID | str) -> User:
        target = parse_id(user_id, "user")
        doc = await self.store.find_one(COLLECTION, [eq("id", target)])
        if doc is None:
            raise NotFoundError("Cannot find a user with the specified identifier.")
        return User.model_validate(doc)

    def _created_between(self, filters: UserListFilter) -> list[Clause]:
        if filters.date_range == "all_time":
            return []
        if filters.date_range == "custom":
            start, end = filters.start_date, filters.end_date
        else:
            end = self.clock.now()
            start = months_before(end, RANGE_MONTHS[filters.date_range])
        return [gte("created_at", _day_bound(start, time.min)), lte("created_at", _day_bound(end, time.max))]

    async def list(
        self,
        filters: Mapping[str, Any] | UserListFilter | None = None,
        page_params: Mapping[str, Any] | PageParams | None = None,
    ) -> Page[User]:
        """
        Page through users, newest first.

        Whole days bound the creation window. A search matches first or last
        name by case-insensitive substring, but an email address only exactly.
        """
        values = validate_attributes(UserListFilter, filters)
        params = parse_page_params(page_params, self.rules.pagination)

        query = self._created_between(values)
        if values.search:
            query.append(
                any_of(
                    contains("first_name", values.search),
                    contains("last_name", values.search),
                    eq("email_address", values.search),
                )
            )
        docs, total = await self.store.paginate(
            COLLECTION, query, offset=params.offset, limit=params.limit, order_by="created_at"
        )
        return Page.build([User.model_validate(d) for d in docs], total, params)

    async def update_profile(
        self, actor: User, user_id: UUID | str, attributes: Mapping[str, Any] | ProfileUpdate | None
    ) -> User:
        """Update the actor's own profile. Any other account reads as not found."""
        values = validate_attributes(ProfileUpdate, attributes)
        target = parse_id(user_id, "user")
        if target != actor.id:
            raise NotFoundError(INVALID_USER_MESSAGE)

        changes = values.model_dump(mode="json", exclude_unset=True)
        doc = await self.store.update_one(COLLECTION, [eq("id", target)], changes)
        if doc is None:
            raise NotFoundError(INVALID_USER_MESSAGE)
        return User.model_validate(doc)

    async def grant_role(self, email: str, role: RoleType) -> User:
        async with self.store.transaction() as session:
            doc = await session.find_one(COLLECTION, [eq("email_address", email)])
            if doc is None:
                raise NotFoundError("Cannot find a user with the specified email address.")
            roles = list(doc.get("roles") or [])
            if role not in roles:
                roles.append(role)
                doc = await session.update_one(COLLECTION, [eq("id", doc["id"])], {"roles": roles})
        logger.info("Granted role %s to user %s", role, doc["id"])
        return User.model_validate(doc)
