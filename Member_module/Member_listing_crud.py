from sqlalchemy.orm import Query, Session
from typing import Iterator, Optional, Union
import logging

from Settings_module import Settings_crud
from .Member_model import Member, MemberInfo
from .Member_schema import ProfileRow, SearchOrder, SortDirection
from .Member_search import check_pagination, order_clause, rows, visible_members, with_avatar_only

logger = logging.getLogger(__name__)


def _complete_profiles(query: Query) -> Query:
    """Only profiles whose identity and location columns are all filled in."""
    return query.filter(
        Member.username.isnot(None),
        Member.first_name.isnot(None),
        Member.sex.isnot(None),
        Member.match_sex.isnot(None),
        MemberInfo.country.isnot(None),
        MemberInfo.city.isnot(None),
    )


def _paginate(query: Query, offset: Optional[int], limit: Optional[int]) -> Query:
    # Both bounds are needed, like LIMIT offset, count
    if offset is not None and limit is not None:
        query = query.offset(offset).limit(limit)
    return query


def get_profiles(
    db: Session,
    order: str = SearchOrder.LAST_ACTIVITY.value,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
    actor_id: Optional[int] = None,
) -> Iterator[ProfileRow]:
    """
    Visible profiles, newest first for the chosen order.
    Restricted to members with an approved avatar when the
    profileWithAvatarSet setting is on.
    """
    check_pagination(offset, limit)
    query = _complete_profiles(visible_members(db, actor_id))
    if Settings_crud.get_profile_with_avatar_set(db):
        query = with_avatar_only(query)

    query = query.order_by(order_clause(order, SortDirection.DESC.value))
    return rows(_paginate(query, offset, limit))


def get_geo_profiles(
    db: Session,
    country: str,
    city: Optional[str] = None,
    count: bool = False,
    order: str = SearchOrder.LATEST.value,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
) -> Union[int, Iterator[ProfileRow]]:
    """Visible profiles of one country, optionally narrowed to a city substring."""
    check_pagination(offset, limit)
    query = _complete_profiles(visible_members(db)).filter(MemberInfo.country == country)
    if city:
        query = query.filter(MemberInfo.city.like(f"%{city}%"))

    if count:
        return _paginate(query.with_entities(Member.profile_id), offset, limit).count()

    query = query.order_by(order_clause(order, SortDirection.DESC.value))
    return rows(_paginate(query, offset, limit))
