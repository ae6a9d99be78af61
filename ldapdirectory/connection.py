"""
The boundary between directory searches and the LDAP transport.

:py:class:`~ldapdirectory.search.DirectorySearch` only needs something that can
run one :py:class:`SearchRequest` and hand back :py:class:`Entry` objects, or
raise :py:class:`~ldapdirectory.errors.SizeLimitExceeded` /
:py:class:`~ldapdirectory.errors.TransportError`.  That is the
:py:class:`DirectoryConnection` protocol.  :py:class:`LdapConnection` is the
implementation of it on top of python-ldap.
"""

import logging
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import ldap

from .errors import SizeLimitExceeded, TransportError
from .typing import AttributeMap, LDAPData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchRequest:
    """
    One search against one search root.

    Args:
        base: the DN to start the search from.
        filter: the LDAP filter string.

    Keyword Args:
        attributes: the attributes to return.  Empty means all of them.
        sizelimit: the maximum number of entries to return.  ``0`` means no
            client side limit.
        scope: the python-ldap search scope.
        deref: the python-ldap alias dereferencing policy.

    """

    base: str
    filter: str
    attributes: tuple[str, ...] = ()
    sizelimit: int = 0
    scope: int = ldap.SCOPE_SUBTREE  # type: ignore[attr-defined]
    deref: int = ldap.DEREF_ALWAYS  # type: ignore[attr-defined]

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", tuple(self.attributes or ()))


@dataclass
class Entry:
    """
    A single directory entry: its DN and its attributes.

    Attribute values are kept as the raw ``bytes`` python-ldap returns.
    """

    dn: str
    attributes: AttributeMap = field(default_factory=dict)

    @classmethod
    def from_ldap(cls, data: LDAPData) -> "Entry":
        dn, attrs = data
        return cls(dn=dn, attributes=dict(attrs))

    def get(self, name: str) -> list[str]:
        """
        Return the values of attribute ``name`` decoded as UTF-8.  Attribute
        names are matched case-insensitively, as LDAP does.  A missing
        attribute gives an empty list.

        Bytes that are not UTF-8 (``objectSid``, ``objectGUID``, photos) are
        replaced with U+FFFD; read :py:attr:`attributes` for the raw values.
        """
        name = name.lower()
        for key, values in self.attributes.items():
            if key.lower() == name:
                return [v.decode("utf-8", errors="replace") for v in values]
        return []


@runtime_checkable
class DirectoryConnection(Protocol):
    """
    Something that can execute a :py:class:`SearchRequest`.

    Implementations must raise
    :py:class:`~ldapdirectory.errors.SizeLimitExceeded` when the request's size
    limit was exceeded and :py:class:`~ldapdirectory.errors.TransportError` for
    every other failure.  Implementations that are shared between threads must
    be thread-safe themselves.
    """

    def search(self, request: SearchRequest) -> list[Entry]: ...


def describe_ldap_error(exc: Exception) -> str:
    """
    Turn a python-ldap exception into a one line description.  python-ldap puts
    a dict with ``desc`` and (sometimes) ``info`` keys in ``args[0]``.
    """
    if exc.args and isinstance(exc.args[0], dict):
        details = exc.args[0]
        desc = details.get("desc", exc.__class__.__name__)
        if info := details.get("info"):
            return f"{desc}: {info}"
        return desc
    return str(exc) or exc.__class__.__name__


class LdapConnection:
    """
    A :py:class:`DirectoryConnection` backed by a python-ldap ``LDAPObject``.

    The ``LDAPObject`` must already be initialized and bound; this class only
    searches with it.  Like the ``LDAPObject`` it wraps, it must not be used
    from more than one thread at a time.

    Args:
        connection: a bound python-ldap ``LDAPObject``.

    """

    def __init__(self, connection: ldap.ldapobject.LDAPObject) -> None:  # type: ignore[name-defined]
        self.connection = connection

    def search(self, request: SearchRequest) -> list[Entry]:
        """
        Run ``request`` and return the entries found.

        Results are read one message at a time so that the entries the server
        sent before hitting the size limit are not lost.

        Raises:
            SizeLimitExceeded: the server found more than ``request.sizelimit``
                entries.  Its ``entries`` holds the ones it returned.
            TransportError: any other LDAP failure.

        """
        logger.debug(
            "ldapdirectory.connection.search basedn=%s filter=%s sizelimit=%s",
            request.base,
            request.filter,
            request.sizelimit,
        )
        entries: list[Entry] = []
        try:
            self.connection.set_option(ldap.OPT_DEREF, request.deref)  # type: ignore[attr-defined]
            msgid = self.connection.search_ext(
                request.base,
                request.scope,
                request.filter,
                list(request.attributes) or None,
                sizelimit=request.sizelimit,
            )
            while True:
                rtype, rdata, _, _ = self.connection.result3(msgid, all=0)
                # AD sends search references along with the entries; those
                # have no attribute dict and are not entries
                entries.extend(
                    Entry.from_ldap((dn, attrs))
                    for dn, attrs in rdata
                    if isinstance(attrs, dict)
                )
                if rtype == ldap.RES_SEARCH_RESULT:  # type: ignore[attr-defined]
                    break
        except ldap.SIZELIMIT_EXCEEDED as e:  # type: ignore[attr-defined]
            raise SizeLimitExceeded(describe_ldap_error(e), entries=entries) from e
        except ldap.LDAPError as e:  # type: ignore[attr-defined]
            raise TransportError(describe_ldap_error(e)) from e
        return entries
