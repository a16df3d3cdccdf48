"""
Repositories the rules engine reads from and writes through
"""
import logging
from typing import Dict, Generic, Iterable, List, Optional, Type, TypeVar

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from .models import Article, ArticleTag, Base, Feed, Rule, RuleCondition, Tag, utcnow

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Basic CRUD operations; write failures roll back and propagate"""

    def __init__(self, model: Type[ModelType], db: Session):
        self.model = model
        self.db = db

    def get_by_id(self, id: int) -> Optional[ModelType]:
        if id is None:
            return None
        return self.db.get(self.model, id)

    def get_all(self) -> List[ModelType]:
        return self.db.query(self.model).order_by(self.model.id).all()

    def insert(self, obj: ModelType) -> ModelType:
        try:
            self.db.add(obj)
            self.db.commit()
            self.db.refresh(obj)
            return obj
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def update(self, obj: ModelType) -> ModelType:
        try:
            self.db.add(obj)
            self.db.commit()
            return obj
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def delete(self, obj: ModelType) -> None:
        try:
            self.db.delete(obj)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def discard_changes(self, obj: ModelType) -> None:
        """Drop unsaved attribute changes; they reload from the database on next access"""
        self.db.expire(obj)


class RuleRepository(BaseRepository[Rule]):
    """Rule store"""

    def __init__(self, db: Session):
        super().__init__(Rule, db)

    def get_active_rules(self) -> List[Rule]:
        """Enabled rules, lowest priority number first"""
        return (self.db.query(Rule)
                .options(selectinload(Rule.conditions))
                .filter(Rule.is_enabled.is_(True))
                .order_by(Rule.priority, Rule.id)
                .all())

    def get_by_name(self, name: str) -> Optional[Rule]:
        return self.db.query(Rule).filter(func.lower(Rule.name) == name.strip().lower()).first()

    def exists_by_name(self, name: str, exclude_id: Optional[int] = None) -> bool:
        """Case-insensitive name lookup, optionally ignoring one rule"""
        query = self.db.query(Rule.id).filter(func.lower(Rule.name) == name.strip().lower())
        if exclude_id is not None:
            query = query.filter(Rule.id != exclude_id)
        return query.first() is not None

    def record_match(self, rule: Rule) -> None:
        """Atomically bump the match counter and timestamps of ``rule``"""
        now = utcnow()
        try:
            self.db.execute(
                update(Rule)
                .where(Rule.id == rule.id)
                .values(match_count=Rule.match_count + 1, last_match_date=now, last_modified=now)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(rule, attribute_names=['match_count', 'last_match_date', 'last_modified'])

    def get_top_by_match_count(self, limit: int = 10) -> List[Rule]:
        return (self.db.query(Rule)
                .order_by(Rule.match_count.desc(), Rule.id)
                .limit(limit)
                .all())


class RuleConditionRepository(BaseRepository[RuleCondition]):
    def __init__(self, db: Session):
        super().__init__(RuleCondition, db)

    def get_by_rule_id(self, rule_id: int) -> List[RuleCondition]:
        return (self.db.query(RuleCondition)
                .filter(RuleCondition.rule_id == rule_id)
                .order_by(RuleCondition.group_id, RuleCondition.order, RuleCondition.id)
                .all())

    def get_max_order_in_group(self, rule_id: int, group_id: int) -> int:
        max_order = (self.db.query(func.max(RuleCondition.order))
                     .filter(RuleCondition.rule_id == rule_id, RuleCondition.group_id == group_id)
                     .scalar())
        return max_order if max_order is not None else 0

    def reorder(self, rule_id: int, group_id: int, order_map: Dict[int, int]) -> int:
        """Apply ``{condition_id: order}`` within one group; returns rows changed"""
        conditions = (self.db.query(RuleCondition)
                      .filter(RuleCondition.rule_id == rule_id,
                              RuleCondition.group_id == group_id,
                              RuleCondition.id.in_(list(order_map)))
                      .all())
        try:
            for condition in conditions:
                condition.order = order_map[condition.id]
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return len(conditions)


class ArticleRepository(BaseRepository[Article]):
    """Article store"""

    def __init__(self, db: Session):
        super().__init__(Article, db)

    def get_unprocessed(self, limit: Optional[int] = None) -> List[Article]:
        query = (self.db.query(Article)
                 .filter(Article.is_processed.is_(False))
                 .order_by(Article.id))
        if limit:
            query = query.limit(limit)
        return query.all()


class FeedRepository(BaseRepository[Feed]):
    """Feed store"""

    def __init__(self, db: Session):
        super().__init__(Feed, db)


class ArticleTagRepository(BaseRepository[ArticleTag]):
    """Tag association collaborator"""

    def __init__(self, db: Session):
        super().__init__(ArticleTag, db)

    def get_tag_ids(self, article_id: int) -> List[int]:
        rows = (self.db.query(ArticleTag.tag_id)
                .filter(ArticleTag.article_id == article_id)
                .order_by(ArticleTag.tag_id)
                .all())
        return [row.tag_id for row in rows]

    def apply_tags(self, article: Article, tag_ids: Iterable[int], rule: Optional[Rule] = None) -> int:
        """Attach known tags not yet on the article; returns how many were added"""
        wanted = set(tag_ids)
        if not wanted:
            return 0

        known = {row.id for row in self.db.query(Tag.id).filter(Tag.id.in_(wanted)).all()}
        missing = wanted - known
        if missing:
            logger.warning(f"Skipping unknown tag IDs {sorted(missing)} for article {article.id}")

        existing = set(self.get_tag_ids(article.id))
        added = 0
        try:
            for tag_id in sorted(known - existing):
                self.db.add(ArticleTag(
                    article_id=article.id,
                    tag_id=tag_id,
                    applied_by_rule_id=rule.id if rule is not None else None,
                ))
                added += 1
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return added
