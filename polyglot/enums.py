from enum import Enum


class BaseActionEnum(str, Enum):
    def __str__(self) -> str:
        return self.value


class TranslationStoreAction(BaseActionEnum):
    FIND = "find"
    CREATE = "create"
    LIST = "list"
    PERSIST = "persist"
    REJECT = "reject"


class ResolverAction(BaseActionEnum):
    FLUSH_START = "flush_start"
    FLUSH_DONE = "flush_done"
    FLUSH_FAILED = "flush_failed"
