"""
Exception classes for directory configuration and search failures.

This module provides the error types raised by :py:mod:`ldapdirectory.config`
and :py:mod:`ldapdirectory.search`, plus :py:class:`AggregatingError`, which
collects the failures of an operation that iterates over several independent
attempts (one per configured DN, for example) without stopping at the first
one.
"""

from typing import Any, Protocol, runtime_checkable

from django.core.exceptions import ImproperlyConfigured


@runtime_checkable
class AggregateLike(Protocol):
    """
    Anything that carries a flat list of failure messages that should be merged
    message by message instead of as a single opaque error.
    """

    messages: list[str]

    def is_aggregate(self) -> bool: ...


class AggregatingError(Exception):
    """
    Collects zero or more failure messages.

    An empty :py:class:`AggregatingError` means "no error": it is falsy, and
    :py:meth:`as_error` returns ``None`` for it.  Callers should check
    :py:meth:`is_empty` before raising one.

    Args:
        *messages: initial messages, in the order they were observed.

    """

    #: Prefix used when rendering the error as text.
    PREFIX: str = "ERROR: "

    def __init__(self, *messages: str) -> None:
        super().__init__()
        self.messages: list[str] = list(messages)

    def is_aggregate(self) -> bool:
        return True

    def add_message(self, fmt: str, *args: Any) -> None:
        """
        Append one message.  If ``args`` are given, ``fmt`` is ``%``-formatted
        with them.

        Args:
            fmt: the message, or a ``%``-style format string.
            *args: format arguments.

        """
        self.messages.append(fmt % args if args else fmt)

    def add_error(self, err: BaseException | None) -> None:
        """
        Append the message(s) of ``err``.

        ``None`` is ignored.  Aggregates are flattened: their messages are
        appended in order.  Any other error contributes ``str(err)``.

        Args:
            err: the error to merge in.

        """
        if err is None:
            return
        if isinstance(err, AggregateLike) and err.is_aggregate():
            self.messages.extend(err.messages)
            return
        self.messages.append(str(err))

    def is_empty(self) -> bool:
        return not self.messages

    def as_error(self) -> "AggregatingError | None":
        """
        Return ``self`` if any messages were collected, ``None`` otherwise.
        """
        if self.is_empty():
            return None
        return self

    def __bool__(self) -> bool:
        return not self.is_empty()

    def __len__(self) -> int:
        return len(self.messages)

    def __str__(self) -> str:
        if not self.messages:
            return self.PREFIX
        if len(self.messages) == 1:
            return f"{self.PREFIX}: {self.messages[0]}"
        return self.PREFIX + "\n  " + "\n  ".join(self.messages)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({', '.join(map(repr, self.messages))})"


class InvalidConfig(ImproperlyConfigured):
    """
    Raised when a DN cannot be turned into a DNS domain because it has no
    ``dc=`` components.

    Args:
        dn: the offending DN.

    """

    def __init__(self, dn: str) -> None:
        self.dn = dn
        super().__init__(f'Configuration error: invalid BaseDN "{dn}"')


class TransportError(Exception):
    """
    Raised by a :py:class:`~ldapdirectory.connection.DirectoryConnection` when
    a search could not be performed: connection failures, protocol errors,
    bad filters and so on.
    """


class SizeLimitExceeded(TransportError):
    """
    Raised by a :py:class:`~ldapdirectory.connection.DirectoryConnection` when
    the server found more entries than the request's size limit allowed.

    Args:
        *args: the usual exception arguments.

    Keyword Args:
        entries: the entries the server returned before it hit the limit.

    """

    def __init__(self, *args: Any, entries: list[Any] | None = None) -> None:
        super().__init__(*args)
        self.entries: list[Any] = list(entries or [])


class SearchError(Exception):
    """
    A search against one search root failed.

    Args:
        searchfilter: the LDAP filter that was searched for.
        cause: the underlying error, or a description of what went wrong.

    """

    def __init__(self, searchfilter: str, cause: BaseException | str) -> None:
        self.filter = searchfilter
        self.cause = cause
        super().__init__(f'Search error "{searchfilter}": {cause}')


class MultipleEntriesReturned(SearchError):
    """
    A single-entry search matched more than one entry under a search root.
    """

    def __init__(self, searchfilter: str) -> None:
        super().__init__(searchfilter, "more than one entry returned")


class NoEntriesReturned(SearchError):
    """
    A single-entry search matched nothing under a search root.
    """

    def __init__(self, searchfilter: str) -> None:
        super().__init__(searchfilter, "no entries returned")
