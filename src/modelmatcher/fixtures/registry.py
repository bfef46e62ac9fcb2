from contextlib import contextmanager
from typing import Generator

from modelmatcher.matcher import MEMBER_FETCHERS


@contextmanager
def member_fetcher_registry_snapshot() -> Generator[None, None, None]:
    """Restores MEMBER_FETCHERS to its current contents when the block exits (even on error). Wrap any test that
    calls register_member_fetcher in this so a custom model family doesn't leak into other tests

    eg:
    with member_fetcher_registry_snapshot():
        register_member_fetcher(RecordBase, lambda t, obj: list(obj.values.keys()))
        assert_model_match(RecordBase(a=1), RecordBase(a=1))
    """
    original = dict(MEMBER_FETCHERS)
    try:
        yield
    finally:
        MEMBER_FETCHERS.clear()
        MEMBER_FETCHERS.update(original)
