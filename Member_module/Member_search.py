"""
Multi-criteria member search.

Each optional predicate becomes one bound filter; predicates that do not
validate are dropped. An email predicate switches to email-only search.
Date arithmetic is done here from the injected clock so the statement binds
plain dates and runs the same on every dialect.
"""
from datetime import datetime, timedelta
from sqlalchemy import String, cast
from sqlalchemy.orm import Query, Session
from typing import Any, Dict, Iterator, Optional, Union
import logging

from pydantic import ValidationError

from config import settings
from errors import InvalidArgument
from Login_module.Utils.datetime_utils import now_utc, years_ago
from Settings_module import Settings_crud
from .Member_model import Member, MemberInfo, MemberPrivacy, UserStatus
from .Member_realm import Realm, resolve_realm
from .Member_schema import ProfileRow, SearchOrder, SearchParams, SortDirection

logger = logging.getLogger(__name__)

ORDER_COLUMNS = {
    SearchOrder.LATEST: Member.join_date,
    SearchOrder.LAST_ACTIVITY: Member.last_activity,
    SearchOrder.VIEWS: Member.views,
    SearchOrder.RATING: Member.score,
    SearchOrder.USERNAME: Member.username,
    SearchOrder.FIRST_NAME: Member.first_name,
    SearchOrder.LAST_NAME: Member.last_name,
    SearchOrder.EMAIL: Member.email,
}


def order_clause(order: Optional[str], sort: Optional[str] = None, default_sort: SortDirection = SortDirection.ASC):
    """
    ORDER BY expression for an order mode and direction.
    Unknown or empty modes fall back to joinDate, unknown directions to `default_sort`.
    """
    try:
        column = ORDER_COLUMNS[SearchOrder(order)]
    except ValueError:
        column = Member.join_date
    try:
        direction = SortDirection(sort)
    except ValueError:
        direction = default_sort
    return column.desc() if direction is SortDirection.DESC else column.asc()


def _no_spaces(value: Optional[str]) -> bool:
    return bool(value) and not any(c.isspace() for c in value)


def _contains(value: str) -> str:
    return f"%{value}%"


def visible_members(db: Session, actor_id: Optional[int] = None) -> Query:
    """
    Members joined with their privacy and info rows, restricted to profiles
    that may be listed: not the ghost, searchable, not banned and outside the
    visitor and pending groups. `actor_id` is left out of the result.
    """
    query = (
        db.query(Member, MemberPrivacy, MemberInfo)
        .outerjoin(MemberPrivacy, MemberPrivacy.profile_id == Member.profile_id)
        .outerjoin(MemberInfo, MemberInfo.profile_id == Member.profile_id)
        .filter(
            Member.username != settings.GHOST_USERNAME,
            MemberPrivacy.search_profile == "yes",
            Member.group_id != settings.VISITOR_GROUP_ID,
            Member.group_id != settings.PENDING_GROUP_ID,
            Member.ban == 0,
        )
    )
    if actor_id:
        query = query.filter(Member.profile_id != actor_id)
    return query


def with_avatar_only(query: Query) -> Query:
    return query.filter(Member.avatar.isnot(None), Member.avatar != "", Member.approved_avatar == 1)


def check_pagination(offset: Optional[int], limit: Optional[int]) -> None:
    if offset is not None and offset < 0:
        raise InvalidArgument("offset must not be negative")
    if limit is not None and limit < 0:
        raise InvalidArgument("limit must not be negative")


def rows(query: Query) -> Iterator[ProfileRow]:
    for member, privacy, info in query.yield_per(100):
        yield ProfileRow.from_row(member, privacy, info)


def _apply_predicates(db: Session, query: Query, params: SearchParams, now: datetime) -> Query:
    if _no_spaces(params.email):
        return query.filter(Member.email.like(_contains(params.email)))

    if _no_spaces(params.first_name):
        query = query.filter(Member.first_name == params.first_name)
    if _no_spaces(params.middle_name):
        query = query.filter(MemberInfo.middle_name == params.middle_name)
    if _no_spaces(params.last_name):
        query = query.filter(Member.last_name == params.last_name)
    if params.match_sex:
        query = query.filter(Member.match_sex.like(_contains(params.match_sex)))
    if params.sex:
        query = query.filter(Member.sex.in_(params.sex))

    if params.age:
        # Year substring match on birthDate
        query = query.filter(cast(Member.birth_date, String).like(_contains(str(now.year - params.age))))
    elif params.min_age and params.max_age:
        query = query.filter(
            Member.birth_date.between(years_ago(now, params.max_age), years_ago(now, params.min_age))
        )

    if _no_spaces(params.country):
        query = query.filter(MemberInfo.country == params.country)
    if _no_spaces(params.city):
        query = query.filter(MemberInfo.city.like(_contains(params.city.replace("-", " "))))
    if _no_spaces(params.state):
        query = query.filter(MemberInfo.state.like(_contains(params.state.replace("-", " "))))
    if _no_spaces(params.zip_code):
        query = query.filter(MemberInfo.zip_code.like(_contains(params.zip_code)))
    if params.height:
        query = query.filter(MemberInfo.height == params.height)
    if params.weight:
        query = query.filter(MemberInfo.weight == params.weight)

    if params.online:
        timeout = Settings_crud.get_user_timeout(db)
        query = query.filter(
            Member.user_status == UserStatus.ONLINE,
            Member.last_activity > now - timedelta(minutes=timeout),
        )
    if params.avatar:
        query = with_avatar_only(query)
    return query


def search(
    db: Session,
    params: Union[SearchParams, Dict[str, Any]],
    count: bool = False,
    offset: int = 0,
    limit: int = 10,
    realm: Union[str, Realm] = Realm.MEMBERS,
    actor_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Union[int, Iterator[ProfileRow]]:
    """
    Count of matching members when `count` is true, otherwise a lazy
    sequence of ProfileRow limited by (offset, limit).
    """
    if resolve_realm(realm) is not Realm.MEMBERS:
        raise InvalidArgument("Only the Members realm can be searched")
    if not count:
        check_pagination(offset, limit)

    if not isinstance(params, SearchParams):
        try:
            params = SearchParams(**(params or {}))
        except ValidationError as e:
            raise InvalidArgument(str(e)) from e

    now = now or now_utc()
    # Email-only search also lists the acting member
    query = visible_members(db, None if _no_spaces(params.email) else actor_id)
    query = _apply_predicates(db, query, params, now)

    if count:
        return query.with_entities(Member.profile_id).count()

    query = query.order_by(order_clause(params.order, params.sort)).offset(offset).limit(limit)
    return rows(query)
