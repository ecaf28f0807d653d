from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Iterable, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint, inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column, relationship

from polyglot.config import get_settings
from polyglot.errors import TranslationConfigError
from polyglot.locale_context import LocaleContext, normalize_locale
from polyglot.overlay import AttributeOverlay
from polyglot.resolver import TranslationResolver, default_resolver
from polyglot.store import TranslationStore


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TranslationRecord:
    """Columns shared by every translation table.

    Usage::

        class ArticleTranslation(TranslationRecord, Base):
            __tablename__ = "article_translations"
            __translation_owner__ = "articles"

            title: Mapped[Optional[str]] = mapped_column(Text)
    """

    __translation_owner__: ClassVar[str]

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    locale: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)

    @declared_attr
    def owner_id(cls) -> Mapped[int]:
        owner_table = getattr(cls, "__translation_owner__", None)
        if not owner_table:
            raise TranslationConfigError(f"{cls.__name__} must set __translation_owner__")
        return mapped_column(
            Integer,
            ForeignKey(f"{owner_table}.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )

    @declared_attr.directive
    def __table_args__(cls) -> tuple:
        return (
            UniqueConstraint("owner_id", "locale", name=f"uq_{cls.__tablename__}_owner_locale"),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(owner_id={self.owner_id!r}, locale={self.locale!r})"


class TranslatedAttributes:
    """Declarative list of translated attribute names for one owning class."""

    def __init__(self, *names: str, locales: Optional[Iterable[str]] = None) -> None:
        unique: list[str] = []
        for name in names:
            if not name.isidentifier():
                raise TranslationConfigError(f"Invalid attribute name: {name!r}")
            if name not in unique:
                unique.append(name)
        self.names: tuple[str, ...] = tuple(unique)
        self.locales: Optional[tuple[str, ...]] = (
            tuple(normalize_locale(code) for code in locales) if locales is not None else None
        )

    def add(self, *names: str) -> "TranslatedAttributes":
        return TranslatedAttributes(*self.names, *names, locales=self.locales)

    def accessor_locales(self) -> tuple[str, ...]:
        if self.locales is not None:
            return self.locales
        return LocaleContext.from_settings(get_settings()).available_locales()

    def __iter__(self):
        return iter(self.names)

    def __repr__(self) -> str:
        return f"TranslatedAttributes({', '.join(self.names)})"


def translated_attributes(*names: str, locales: Optional[Iterable[str]] = None) -> TranslatedAttributes:
    return TranslatedAttributes(*names, locales=locales)


def locale_accessor_name(locale: str, attribute: str) -> str:
    return f"{locale.replace('-', '_')}_{attribute}"


class TranslatedAttribute:
    """Generic accessor: reads and writes under the entity's active locale."""

    def __init__(self, name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, owner: type) -> Any:
        if instance is None:
            return self
        return instance.read_translation(self.name)

    def __set__(self, instance: Any, value: Any) -> None:
        instance.write_translation(self.name, value)


class BeforeTypeCastAttribute(TranslatedAttribute):
    # No coercion happens, so this is the plain getter under another name.
    def __set__(self, instance: Any, value: Any) -> None:
        raise AttributeError(f"{self.name}_before_type_cast is read-only")


class LocaleBoundAttribute(TranslatedAttribute):
    """Fixed-locale accessor such as ``fr_title``."""

    def __init__(self, name: str, locale: str) -> None:
        super().__init__(name)
        self.locale = locale

    def __get__(self, instance: Any, owner: type) -> Any:
        if instance is None:
            return self
        return instance.read_translation(self.name, locale=self.locale)

    def __set__(self, instance: Any, value: Any) -> None:
        instance.write_translation(self.name, value, locale=self.locale)


def _install(cls: type, accessor: str, descriptor: TranslatedAttribute) -> None:
    existing = cls.__dict__.get(accessor)
    if existing is not None and not isinstance(existing, TranslatedAttribute):
        raise TranslationConfigError(
            f"{cls.__name__}.{accessor} already exists and cannot become a translated accessor"
        )
    setattr(cls, accessor, descriptor)


def _inherited_declaration(cls: type) -> Optional[TranslatedAttributes]:
    for base in cls.__mro__[1:]:
        declared = base.__dict__.get("__translated__")
        if isinstance(declared, TranslatedAttributes):
            return declared
    return None


class Translatable:
    """Mixin for owning entities with per-locale translated attributes.

    Declare the attributes with the builder and keep a matching
    ``<Class>Translation`` model (or name it in ``__translation_class__``)::

        class Article(Translatable, Base):
            __tablename__ = "articles"
            __translated__ = translated_attributes("title", "body")

            id: Mapped[int] = mapped_column(primary_key=True)

    Every attribute gets a generic accessor (``article.title``), a
    ``title_before_type_cast`` alias and one fixed-locale accessor per
    available locale (``article.fr_title``).
    """

    __translated__: ClassVar[TranslatedAttributes]
    __translation_class__: ClassVar[Optional[str]] = None
    __locale_context__: ClassVar[Optional[LocaleContext]] = None
    __translation_resolver__: ClassVar[Optional[TranslationResolver]] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        declared = cls.__dict__.get("__translated__")
        if declared is not None:
            if not isinstance(declared, TranslatedAttributes):
                declared = translated_attributes(*declared)
            inherited = _inherited_declaration(cls)
            if inherited is not None:
                declared = TranslatedAttributes(
                    *inherited.names,
                    *declared.names,
                    locales=declared.locales if declared.locales is not None else inherited.locales,
                )
            cls.__translated__ = declared
            for name in declared.names:
                _install(cls, name, TranslatedAttribute(name))
                _install(cls, f"{name}_before_type_cast", BeforeTypeCastAttribute(name))
                for locale in declared.accessor_locales():
                    _install(cls, locale_accessor_name(locale, name), LocaleBoundAttribute(name, locale))
        super().__init_subclass__(**kwargs)

    @declared_attr
    def translations(cls):
        target = cls.translation_class_name()
        return relationship(
            target,
            cascade="all, delete-orphan",
            passive_deletes=True,
            order_by=f"[{target}.created_at.desc(), {target}.id.desc()]",
        )

    @classmethod
    def translation_class_name(cls) -> str:
        return cls.__translation_class__ or f"{cls.__name__}Translation"

    @classmethod
    def translation_class(cls) -> type:
        return inspect(cls).relationships["translations"].mapper.class_

    @classmethod
    def translated_attribute_names(cls) -> tuple[str, ...]:
        declared = getattr(cls, "__translated__", None)
        return declared.names if declared is not None else ()

    @classmethod
    def translation_resolver(cls) -> TranslationResolver:
        return cls.__translation_resolver__ or default_resolver

    @property
    def translation_overlay(self) -> AttributeOverlay:
        overlay = getattr(self, "_translation_overlay", None)
        if overlay is None:
            overlay = AttributeOverlay()
            self._translation_overlay = overlay
        return overlay

    @property
    def locale_context(self) -> LocaleContext:
        context = getattr(self, "_locale_context", None)
        if context is not None:
            return context
        return type(self).__locale_context__ or LocaleContext.from_settings()

    def bind_locale_context(self, context: LocaleContext) -> "Translatable":
        self._locale_context = context
        return self

    def read_translation(self, attribute: str, locale: Optional[str] = None) -> Any:
        resolver = type(self).translation_resolver()
        if locale is None:
            return resolver.read(self, attribute, self.locale_context)
        return resolver.read_fixed(self, attribute, locale)

    def write_translation(self, attribute: str, value: Any, locale: Optional[str] = None) -> None:
        resolver = type(self).translation_resolver()
        if locale is None:
            resolver.write(self, attribute, value, self.locale_context)
        else:
            resolver.write_fixed(self, attribute, value, locale)

    def all_translated_attributes(self) -> Dict[str, Dict[str, Any]]:
        return type(self).translation_resolver().bulk(self, self.locale_context)

    def after_save(self, store: Optional[TranslationStore] = None) -> list[Any]:
        """Post-save hook: flush pending translations of this entity."""
        resolver = TranslationResolver(store) if store is not None else type(self).translation_resolver()
        return resolver.flush(self)
