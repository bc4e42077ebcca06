"""
Consent state storage adapters for medconsent
Persistence for consents, categories, delegations, templates and history
"""

from typing import Callable, Optional, List, Dict, Tuple
import json
import structlog
from sqlalchemy import create_engine, Column, String, Integer, Boolean, Text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from .models import ConsentKey, ConsentRecord, ConsentTemplate, HistoryEntry
from ..exceptions import StorageError

logger = structlog.get_logger(__name__)

Base = declarative_base()


class ConsentDB(Base):
    """SQLAlchemy model for consent records"""
    __tablename__ = "consents"

    granter = Column(String, primary_key=True)
    grantee = Column(String, primary_key=True)
    category = Column(String, primary_key=True)
    expiry = Column(Integer, nullable=False)
    active = Column(Boolean, nullable=False)
    granted_at = Column(Integer, nullable=False)
    updated_at = Column(Integer, nullable=False)


class CategoryDB(Base):
    """SQLAlchemy model for valid categories"""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)


class DelegationDB(Base):
    """SQLAlchemy model for a granter's ordered delegate list"""
    __tablename__ = "delegations"

    granter = Column(String, primary_key=True)
    delegates = Column(Text, nullable=False)  # JSON list, insertion order


class TemplateDB(Base):
    """SQLAlchemy model for consent templates"""
    __tablename__ = "templates"

    name = Column(String, primary_key=True)
    categories = Column(Text, nullable=False)  # JSON list
    duration = Column(Integer, nullable=False)
    description = Column(Text, nullable=False)
    created_by = Column(String)
    created_at = Column(Integer, nullable=False)


class HistoryDB(Base):
    """SQLAlchemy model for the bounded history of one consent key"""
    __tablename__ = "consent_history"

    granter = Column(String, primary_key=True)
    grantee = Column(String, primary_key=True)
    category = Column(String, primary_key=True)
    entries = Column(Text, nullable=False)  # JSON list, oldest first


class ConsentStateStorage:
    """SQL storage adapter for consent engine state"""

    def __init__(self, database_url: Optional[str] = None):
        # Default to SQLite for development
        self.database_url = database_url or "sqlite:///medconsent.db"
        self.engine = create_engine(self.database_url)
        self.SessionLocal = sessionmaker(bind=self.engine)

        # Create tables
        Base.metadata.create_all(bind=self.engine)
        logger.info("Consent state storage initialised", database_url=self.database_url)

    # -- conversions ---------------------------------------------------------

    @staticmethod
    def _from_consent_row(row: ConsentDB) -> ConsentRecord:
        return ConsentRecord(
            granter=row.granter,
            grantee=row.grantee,
            category=row.category,
            expiry=row.expiry,
            active=row.active,
            granted_at=row.granted_at,
            updated_at=row.updated_at,
        )

    @staticmethod
    def _key_filter(key: ConsentKey) -> Dict[str, str]:
        return {"granter": key.granter, "grantee": key.grantee, "category": key.category}

    @staticmethod
    def _dump_entries(entries: List[HistoryEntry]) -> str:
        return json.dumps([entry.model_dump(mode="json") for entry in entries])

    def _write_consent(self, session, record: ConsentRecord) -> None:
        row = session.query(ConsentDB).filter_by(**self._key_filter(record.key)).first()
        if row is None:
            session.add(ConsentDB(
                granter=record.granter,
                grantee=record.grantee,
                category=record.category,
                expiry=record.expiry,
                active=record.active,
                granted_at=record.granted_at,
                updated_at=record.updated_at,
            ))
        else:
            row.expiry = record.expiry
            row.active = record.active
            row.updated_at = record.updated_at

    def _write_history(self, session, key: ConsentKey, entries: List[HistoryEntry]) -> None:
        row = session.query(HistoryDB).filter_by(**self._key_filter(key)).first()
        if row is None:
            session.add(HistoryDB(entries=self._dump_entries(entries), **self._key_filter(key)))
        else:
            row.entries = self._dump_entries(entries)

    # -- consents ------------------------------------------------------------

    def get_consent(self, key: ConsentKey) -> Optional[ConsentRecord]:
        """Get the consent record for a key"""
        try:
            with self.SessionLocal() as session:
                row = session.query(ConsentDB).filter_by(**self._key_filter(key)).first()
                return self._from_consent_row(row) if row else None
        except SQLAlchemyError as e:
            logger.error("Failed to get consent", key=str(key), error=str(e))
            raise StorageError("get_consent", str(e)) from e

    def save_transition(self, record: ConsentRecord, entries: List[HistoryEntry],
                        before_commit: Optional[Callable[[], None]] = None) -> None:
        """
        Write a consent record and its history in one transaction.

        before_commit runs once the rows are flushed and before the commit;
        if it raises, the transaction is rolled back and the error propagates.
        """
        try:
            with self.SessionLocal() as session:
                self._write_consent(session, record)
                self._write_history(session, record.key, entries)
                session.flush()
                if before_commit is not None:
                    before_commit()
                session.commit()

                logger.debug("Stored consent transition", key=str(record.key),
                             active=record.active, expiry=record.expiry)
        except (SQLAlchemyError, OverflowError) as e:
            # sqlite3 raises OverflowError for integers outside 64 bits
            logger.error("Failed to store consent transition", key=str(record.key), error=str(e))
            raise StorageError("save_transition", str(e)) from e

    # -- history -------------------------------------------------------------

    def get_history(self, key: ConsentKey) -> List[HistoryEntry]:
        """Get the ordered history of a key, oldest first"""
        try:
            with self.SessionLocal() as session:
                row = session.query(HistoryDB).filter_by(**self._key_filter(key)).first()
                if not row:
                    return []
                return [HistoryEntry(**item) for item in json.loads(row.entries)]
        except SQLAlchemyError as e:
            logger.error("Failed to get history", key=str(key), error=str(e))
            raise StorageError("get_history", str(e)) from e

    # -- delegations ---------------------------------------------------------

    def get_delegates(self, granter: str) -> List[str]:
        """Get a granter's delegates in insertion order"""
        try:
            with self.SessionLocal() as session:
                row = session.query(DelegationDB).filter_by(granter=granter).first()
                return json.loads(row.delegates) if row else []
        except SQLAlchemyError as e:
            logger.error("Failed to get delegates", granter=granter, error=str(e))
            raise StorageError("get_delegates", str(e)) from e

    def put_delegates(self, granter: str, delegates: List[str]) -> None:
        """Replace a granter's delegate list"""
        try:
            with self.SessionLocal() as session:
                row = session.query(DelegationDB).filter_by(granter=granter).first()
                if row is None:
                    session.add(DelegationDB(granter=granter, delegates=json.dumps(delegates)))
                else:
                    row.delegates = json.dumps(delegates)
                session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to store delegates", granter=granter, error=str(e))
            raise StorageError("put_delegates", str(e)) from e

    # -- categories ----------------------------------------------------------

    def has_category(self, category: str) -> bool:
        try:
            with self.SessionLocal() as session:
                return session.query(CategoryDB).filter_by(name=category).first() is not None
        except SQLAlchemyError as e:
            logger.error("Failed to look up category", category=category, error=str(e))
            raise StorageError("has_category", str(e)) from e

    def has_categories(self) -> bool:
        try:
            with self.SessionLocal() as session:
                return session.query(CategoryDB).first() is not None
        except SQLAlchemyError as e:
            logger.error("Failed to count categories", error=str(e))
            raise StorageError("has_categories", str(e)) from e

    def add_categories(self, categories: List[str]) -> None:
        """Add categories in order; callers check for duplicates first"""
        try:
            with self.SessionLocal() as session:
                for category in categories:
                    session.add(CategoryDB(name=category))
                session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to add categories", categories=categories, error=str(e))
            raise StorageError("add_categories", str(e)) from e

    def list_categories(self) -> List[str]:
        try:
            with self.SessionLocal() as session:
                rows = session.query(CategoryDB).order_by(CategoryDB.id).all()
                return [row.name for row in rows]
        except SQLAlchemyError as e:
            logger.error("Failed to list categories", error=str(e))
            raise StorageError("list_categories", str(e)) from e

    # -- templates -----------------------------------------------------------

    def get_template(self, name: str) -> Optional[ConsentTemplate]:
        try:
            with self.SessionLocal() as session:
                row = session.query(TemplateDB).filter_by(name=name).first()
                if not row:
                    return None
                return ConsentTemplate(
                    name=row.name,
                    categories=json.loads(row.categories),
                    duration=row.duration,
                    description=row.description,
                    created_by=row.created_by,
                    created_at=row.created_at,
                )
        except SQLAlchemyError as e:
            logger.error("Failed to get template", template=name, error=str(e))
            raise StorageError("get_template", str(e)) from e

    def put_template(self, template: ConsentTemplate) -> None:
        """Store a new template; templates are never updated"""
        try:
            with self.SessionLocal() as session:
                session.add(TemplateDB(
                    name=template.name,
                    categories=json.dumps(template.categories),
                    duration=template.duration,
                    description=template.description,
                    created_by=template.created_by,
                    created_at=template.created_at,
                ))
                session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to store template", template=template.name, error=str(e))
            raise StorageError("put_template", str(e)) from e


class InMemoryConsentStateStorage(ConsentStateStorage):
    """In-memory storage, the default backend"""

    def __init__(self):
        self.consents: Dict[Tuple[str, str, str], ConsentRecord] = {}
        self.history: Dict[Tuple[str, str, str], List[HistoryEntry]] = {}
        self.delegations: Dict[str, List[str]] = {}
        self.categories: List[str] = []
        self.templates: Dict[str, ConsentTemplate] = {}

    @staticmethod
    def _index(key: ConsentKey) -> Tuple[str, str, str]:
        return (key.granter, key.grantee, key.category)

    def get_consent(self, key: ConsentKey) -> Optional[ConsentRecord]:
        record = self.consents.get(self._index(key))
        return record.model_copy() if record else None

    def save_transition(self, record: ConsentRecord, entries: List[HistoryEntry],
                        before_commit: Optional[Callable[[], None]] = None) -> None:
        if before_commit is not None:
            before_commit()
        self.consents[self._index(record.key)] = record.model_copy()
        self.history[self._index(record.key)] = list(entries)

    def get_history(self, key: ConsentKey) -> List[HistoryEntry]:
        return list(self.history.get(self._index(key), []))

    def get_delegates(self, granter: str) -> List[str]:
        return list(self.delegations.get(granter, []))

    def put_delegates(self, granter: str, delegates: List[str]) -> None:
        self.delegations[granter] = list(delegates)

    def has_category(self, category: str) -> bool:
        return category in self.categories

    def has_categories(self) -> bool:
        return bool(self.categories)

    def add_categories(self, categories: List[str]) -> None:
        self.categories.extend(categories)

    def list_categories(self) -> List[str]:
        return list(self.categories)

    def get_template(self, name: str) -> Optional[ConsentTemplate]:
        template = self.templates.get(name)
        return template.model_copy(deep=True) if template else None

    def put_template(self, template: ConsentTemplate) -> None:
        self.templates[template.name] = template.model_copy(deep=True)
