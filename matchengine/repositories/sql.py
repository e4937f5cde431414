"""SQLAlchemy-backed match repository."""

from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from matchengine.config import HardFiltersConfig, get_settings
from matchengine.models.match import MatchAction, MatchHistoryItem, MutualMatch, MutualMatchItem
from matchengine.models.profile import NOT_MENTIONED, PreferenceData, ProfileData, build_profile_data
from matchengine.models.rating import Rating
from matchengine.repositories.base import MatchRepository
from matchengine.services.candidate_filter import filter_candidates
from matchengine.utils.database import Database, MutualMatchDB, ProfileDB, ProfileMatchDB, ProfileRatingDB, utcnow
from matchengine.utils.errors import ConcurrencyError, DatabaseError
from matchengine.utils.logging import get_logger

logger = get_logger(__name__)

CONFLICT_ERRORS = (StaleDataError, IntegrityError, OperationalError)


def _to_profile_data(row: ProfileDB) -> ProfileData:
    return build_profile_data(
        is_bride=row.is_bride,
        date_of_birth=row.date_of_birth,
        height_cm=row.height_cm,
        physically_challenged=row.physically_challenged,
        community=row.community,
        marital_status=row.marital_status,
        profession=row.profession,
        profession_type=row.profession_type,
        education_level=row.highest_education_level,
        home_district=row.home_district,
        profile_id=row.id,
        last_login=row.last_login,
    )


def _translate_error(error: SQLAlchemyError, operation: str) -> DatabaseError:
    if isinstance(error, CONFLICT_ERRORS):
        return ConcurrencyError(
            "Concurrent update detected",
            details={"operation": operation, "error": str(error)},
        )
    return DatabaseError(
        f"Database error during {operation}",
        details={"operation": operation, "error": str(error)},
    )


class SQLAlchemyMatchRepository(MatchRepository):
    """
    Match repository over the SQLAlchemy models in `matchengine.utils.database`.

    Each method runs in its own short transaction, except inside `atomic()`,
    where the yielded repository shares one session and one transaction.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        hard_filters: Optional[HardFiltersConfig] = None,
        session: Optional[Session] = None,
    ) -> None:
        self._session_factory = session_factory or Database.get_session_factory()
        self.hard_filters = hard_filters or get_settings().hard_filters
        self._session = session

    @contextmanager
    def _session_scope(self, operation: str) -> Iterator[Session]:
        # Bound repositories leave commit and error translation to atomic()
        if self._session is not None:
            yield self._session
            return

        session = self._session_factory()
        try:
            with session.begin():
                yield session
        except SQLAlchemyError as e:
            logger.error("Database operation failed", operation=operation, error=str(e))
            raise _translate_error(e, operation) from e
        finally:
            session.close()

    @contextmanager
    def atomic(self, viewer_id: str, target_id: str) -> Iterator["SQLAlchemyMatchRepository"]:
        """
        Run a unit of work in one transaction.

        Both rating rows are locked up front, in sorted ID order, so two
        writers touching the same pair queue instead of deadlocking.
        """
        if self._session is not None:
            yield self
            return

        session = self._session_factory()
        try:
            with session.begin():
                for profile_id in sorted({viewer_id, target_id}):
                    session.get(ProfileRatingDB, profile_id, with_for_update=True)
                yield SQLAlchemyMatchRepository(self._session_factory, self.hard_filters, session=session)
        except SQLAlchemyError as e:
            logger.warning(
                "Match action transaction failed",
                viewer_id=viewer_id,
                target_id=target_id,
                error=str(e),
            )
            raise _translate_error(e, "match_action") from e
        finally:
            session.close()

    def get_profile(self, profile_id: str) -> Optional[ProfileData]:
        with self._session_scope("get_profile") as session:
            row = session.get(ProfileDB, profile_id)
            if row is None or row.is_deleted:
                return None
            return _to_profile_data(row)

    def get_matched_profile_ids(self, viewer_id: str) -> List[str]:
        with self._session_scope("get_matched_profile_ids") as session:
            stmt = select(ProfileMatchDB.target_id).where(
                ProfileMatchDB.user_id == viewer_id,
                ProfileMatchDB.is_deleted.is_(False),
            )
            return list(session.scalars(stmt))

    def get_potential_profiles(
        self,
        viewer_id: str,
        exclude_ids: Sequence[str],
        preferences: Optional[PreferenceData],
    ) -> List[ProfileData]:
        with self._session_scope("get_potential_profiles") as session:
            viewer = session.get(ProfileDB, viewer_id)
            viewer_is_bride = viewer.is_bride if viewer is not None else None

            stmt = select(ProfileDB).where(ProfileDB.id != viewer_id, ProfileDB.is_deleted.is_(False))
            if viewer_is_bride is not None:
                stmt = stmt.where(ProfileDB.is_bride == (not viewer_is_bride))
            if exclude_ids:
                stmt = stmt.where(ProfileDB.id.not_in(list(exclude_ids)))
            stmt = self._apply_hard_filters(stmt, preferences)
            stmt = stmt.order_by(ProfileDB.last_login.desc(), ProfileDB.id)

            profiles = [_to_profile_data(row) for row in session.scalars(stmt)]

        # Age depends on the evaluation date, so it is checked on the built profiles
        return filter_candidates(viewer_id, viewer_is_bride, profiles, exclude_ids, preferences, self.hard_filters)

    def _apply_hard_filters(self, stmt, preferences: Optional[PreferenceData]):  # type: ignore[no-untyped-def]
        filters = self.hard_filters
        if not filters.enabled or preferences is None:
            return stmt

        if filters.apply_height_filter:
            unknown_height = or_(ProfileDB.height_cm.is_(None), ProfileDB.height_cm <= 0)
            min_height, max_height = preferences.height_range
            if min_height is not None:
                stmt = stmt.where(or_(unknown_height, ProfileDB.height_cm >= min_height))
            if max_height is not None:
                stmt = stmt.where(or_(unknown_height, ProfileDB.height_cm <= max_height))

        if filters.apply_physically_challenged_filter and not preferences.accept_physically_challenged:
            stmt = stmt.where(ProfileDB.physically_challenged.is_(False))

        if filters.apply_marital_status_filter and preferences.preferred_marital_status:
            accepted = sorted(preferences.preferred_marital_status | {NOT_MENTIONED})
            stmt = stmt.where(ProfileDB.marital_status.in_(accepted))

        if filters.apply_education_filter and preferences.preferred_education_levels:
            accepted = sorted(preferences.preferred_education_levels | {NOT_MENTIONED})
            stmt = stmt.where(ProfileDB.highest_education_level.in_(accepted))

        return stmt

    def _get_action_row(self, session: Session, viewer_id: str, target_id: str) -> Optional[ProfileMatchDB]:
        stmt = select(ProfileMatchDB).where(
            ProfileMatchDB.user_id == viewer_id,
            ProfileMatchDB.target_id == target_id,
            ProfileMatchDB.is_deleted.is_(False),
        )
        return session.scalars(stmt).first()

    def record_match_action(self, viewer_id: str, target_id: str, action: MatchAction) -> None:
        with self._session_scope("record_match_action") as session:
            row = self._get_action_row(session, viewer_id, target_id)
            now = utcnow()
            if row is None:
                session.add(
                    ProfileMatchDB(
                        user_id=viewer_id,
                        target_id=target_id,
                        status=MatchAction(action).value,
                        created_at=now,
                        updated_at=now,
                    )
                )
            else:
                row.status = MatchAction(action).value
                row.updated_at = now
            session.flush()

    def get_match_action(self, viewer_id: str, target_id: str) -> Optional[MatchAction]:
        with self._session_scope("get_match_action") as session:
            row = self._get_action_row(session, viewer_id, target_id)
            return MatchAction(row.status) if row is not None else None

    def check_for_mutual_match(self, id_a: str, id_b: str) -> bool:
        with self._session_scope("check_for_mutual_match") as session:
            stmt = (
                select(func.count())
                .select_from(ProfileMatchDB)
                .where(
                    or_(
                        and_(ProfileMatchDB.user_id == id_a, ProfileMatchDB.target_id == id_b),
                        and_(ProfileMatchDB.user_id == id_b, ProfileMatchDB.target_id == id_a),
                    ),
                    ProfileMatchDB.status == MatchAction.LIKED.value,
                    ProfileMatchDB.is_deleted.is_(False),
                )
            )
            return session.scalar(stmt) == 2

    def _get_mutual_row(self, session: Session, id_a: str, id_b: str) -> Optional[MutualMatchDB]:
        user_id_1, user_id_2 = MutualMatch.pair(id_a, id_b)
        stmt = select(MutualMatchDB).where(
            MutualMatchDB.user_id_1 == user_id_1,
            MutualMatchDB.user_id_2 == user_id_2,
            MutualMatchDB.is_deleted.is_(False),
        )
        return session.scalars(stmt).first()

    def is_mutual_match_active(self, id_a: str, id_b: str) -> bool:
        with self._session_scope("is_mutual_match_active") as session:
            row = self._get_mutual_row(session, id_a, id_b)
            return bool(row is not None and row.is_active)

    def create_mutual_match(self, id_a: str, id_b: str) -> bool:
        with self._session_scope("create_mutual_match") as session:
            row = self._get_mutual_row(session, id_a, id_b)
            now = utcnow()
            if row is None:
                user_id_1, user_id_2 = MutualMatch.pair(id_a, id_b)
                session.add(
                    MutualMatchDB(
                        user_id_1=user_id_1,
                        user_id_2=user_id_2,
                        matched_at=now,
                        is_active=True,
                        created_at=now,
                        updated_at=now,
                    )
                )
            elif row.is_active:
                return False
            else:
                row.is_active = True
                row.matched_at = now
                row.updated_at = now
            session.flush()
            return True

    def deactivate_mutual_match(self, id_a: str, id_b: str) -> bool:
        with self._session_scope("deactivate_mutual_match") as session:
            row = self._get_mutual_row(session, id_a, id_b)
            if row is None or not row.is_active:
                return False
            row.is_active = False
            row.updated_at = utcnow()
            session.flush()
            return True

    def get_match_history(
        self, viewer_id: str, status: Optional[MatchAction], limit: int, offset: int
    ) -> Tuple[List[MatchHistoryItem], int]:
        with self._session_scope("get_match_history") as session:
            conditions = [ProfileMatchDB.user_id == viewer_id, ProfileMatchDB.is_deleted.is_(False)]
            if status is not None:
                conditions.append(ProfileMatchDB.status == MatchAction(status).value)

            total = session.scalar(select(func.count()).select_from(ProfileMatchDB).where(*conditions)) or 0
            stmt = (
                select(ProfileMatchDB)
                .where(*conditions)
                .order_by(ProfileMatchDB.updated_at.desc(), ProfileMatchDB.id.desc())
                .offset(offset)
                .limit(limit)
            )
            items = [
                MatchHistoryItem(target_profile_id=row.target_id, action=MatchAction(row.status), timestamp=row.updated_at)
                for row in session.scalars(stmt)
            ]
            return items, total

    def get_mutual_matches(self, viewer_id: str, limit: int, offset: int) -> Tuple[List[MutualMatchItem], int]:
        with self._session_scope("get_mutual_matches") as session:
            conditions = [
                or_(MutualMatchDB.user_id_1 == viewer_id, MutualMatchDB.user_id_2 == viewer_id),
                MutualMatchDB.is_active.is_(True),
                MutualMatchDB.is_deleted.is_(False),
            ]
            total = session.scalar(select(func.count()).select_from(MutualMatchDB).where(*conditions)) or 0
            stmt = (
                select(MutualMatchDB)
                .where(*conditions)
                .order_by(MutualMatchDB.matched_at.desc(), MutualMatchDB.id.desc())
                .offset(offset)
                .limit(limit)
            )
            items = [
                MutualMatchItem(
                    profile_id=row.user_id_2 if row.user_id_1 == viewer_id else row.user_id_1,
                    matched_at=row.matched_at,
                )
                for row in session.scalars(stmt)
            ]
            return items, total

    def get_rating(self, profile_id: str) -> Optional[Rating]:
        with self._session_scope("get_rating") as session:
            row = session.get(ProfileRatingDB, profile_id)
            if row is None:
                return None
            return Rating(profile_id=row.profile_id, rating=row.rating, match_count=row.match_count)

    def save_rating(self, rating: Rating) -> None:
        with self._session_scope("save_rating") as session:
            row = session.get(ProfileRatingDB, rating.profile_id)
            if row is None:
                session.add(
                    ProfileRatingDB(profile_id=rating.profile_id, rating=rating.rating, match_count=rating.match_count)
                )
            else:
                row.rating = rating.rating
                row.match_count = rating.match_count
                row.updated_at = utcnow()
            session.flush()
