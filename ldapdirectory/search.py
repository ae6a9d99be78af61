"""
Searches across every configured search root.

:py:class:`DirectorySearch` runs each search against the search roots of a
:py:class:`~ldapdirectory.config.DirectoryConfig` in turn, through a
:py:class:`~ldapdirectory.connection.DirectoryConnection`.  A search root that
fails does not stop the search; a failure is only raised when no search root
produced an answer, and then it is the failure from the last search root tried.
"""

import logging
from typing import cast

from ldap_filter import Filter

from .config import DirectoryConfig
from .connection import DirectoryConnection, Entry, SearchRequest
from .errors import (
    MultipleEntriesReturned,
    NoEntriesReturned,
    SearchError,
    SizeLimitExceeded,
    TransportError,
)

logger = logging.getLogger(__name__)

#: The attribute list that asks the server for no attributes at all (RFC 4511)
NO_ATTRIBUTES: list[str] = ["1.1"]


class DirectorySearch:
    """
    Search a directory below each of the search roots of ``config``.

    Args:
        config: the directory configuration.
        connection: the connection to search with.

    """

    def __init__(
        self, config: DirectoryConfig, connection: DirectoryConnection
    ) -> None:
        self.config = config
        self.connection = connection

    def _request(
        self, base: str, searchfilter: str, attributes: list[str] | None, sizelimit: int
    ) -> SearchRequest:
        return SearchRequest(
            base=base,
            filter=searchfilter,
            attributes=tuple(attributes or ()),
            sizelimit=sizelimit,
        )

    def search(
        self,
        searchfilter: str,
        attributes: list[str] | None = None,
        sizelimit: int = 0,
    ) -> list[Entry]:
        """
        Return the entries matching ``searchfilter`` below every search root.

        Entries are returned in search root order.  Search roots that fail are
        skipped.  A search root that has more matches than ``sizelimit``
        contributes the entries the server returned before it stopped.

        Args:
            searchfilter: the LDAP filter string.
            attributes: the attributes to return.  Empty means all of them.
            sizelimit: the maximum number of entries per search root; ``0``
                for no limit.

        Raises:
            SearchError: no entries were found and at least one search root
                failed.  This is the failure of the last search root that failed.

        Returns:
            The combined entries; possibly empty.

        """
        answer: list[Entry] = []
        error: SearchError | None = None
        for base in self.config.search_roots:
            request = self._request(base, searchfilter, attributes, sizelimit)
            try:
                answer.extend(self.connection.search(request))
            except SizeLimitExceeded as e:
                # Keep what the server sent before it stopped
                answer.extend(e.entries)
                logger.warning(
                    "ldapdirectory.search.sizelimit basedn=%s filter=%s entries=%d",
                    base,
                    searchfilter,
                    len(e.entries),
                )
                error = SearchError(searchfilter, e)
            except TransportError as e:
                logger.warning(
                    "ldapdirectory.search.failed basedn=%s filter=%s error=%s",
                    base,
                    searchfilter,
                    e,
                )
                error = SearchError(searchfilter, e)
        if not answer and error is not None:
            raise error
        if error is not None:
            logger.info(
                "ldapdirectory.search.partial filter=%s entries=%d error=%s",
                searchfilter,
                len(answer),
                error,
            )
        return answer

    def search_one(
        self, searchfilter: str, attributes: list[str] | None = None
    ) -> Entry:
        """
        Return the entry matching ``searchfilter``.

        Search roots are tried in order and the first one with exactly one
        match wins; the remaining search roots are not searched.

        Args:
            searchfilter: the LDAP filter string.
            attributes: the attributes to return.  Empty means all of them.

        Raises:
            MultipleEntriesReturned: the last search root tried had more than
                one match.
            NoEntriesReturned: the last search root tried had no matches.
            SearchError: the last search root tried failed.

        Returns:
            The matching entry.

        """
        error: SearchError | None = None
        for base in self.config.search_roots:
            request = self._request(base, searchfilter, attributes, 1)
            try:
                entries = self.connection.search(request)
            except SizeLimitExceeded:
                error = MultipleEntriesReturned(searchfilter)
            except TransportError as e:
                error = SearchError(searchfilter, e)
            else:
                if entries:
                    return entries[0]
                error = NoEntriesReturned(searchfilter)
            logger.debug(
                "ldapdirectory.search_one.miss basedn=%s error=%s", base, error
            )
        # search_roots is never empty, so error is always set here
        raise cast("SearchError", error)

    def get_dn(self, attr: str, value: str) -> str:
        """
        Return the DN of the entry whose ``attr`` is ``value``.

        ``value`` is escaped, so ``*``, ``(`` and ``)`` in it match literally.

        Raises:
            SearchError: see :py:meth:`search_one`.

        """
        return self.search_one(self.equality_filter(attr, value), NO_ATTRIBUTES).dn

    def get_attributes(self, attr: str, value: str, attributes: list[str]) -> Entry:
        """
        Return the entry whose ``attr`` is ``value``, with only ``attributes``
        populated.

        ``value`` is escaped, so ``*``, ``(`` and ``)`` in it match literally.

        Raises:
            SearchError: see :py:meth:`search_one`.

        """
        return self.search_one(self.equality_filter(attr, value), attributes)

    @staticmethod
    def equality_filter(attr: str, value: str) -> str:
        """
        Return the equality filter ``(attr=value)``.  ``value`` is escaped
        (RFC 4515), so ``("cn", "a*")`` gives ``(cn=a\\2a)``, not a wildcard.
        """
        return Filter.attribute(attr).equal_to(value).to_string()
