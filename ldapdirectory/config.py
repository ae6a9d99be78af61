"""
Directory configuration and domain/UPN derivation.

This module provides :py:class:`DirectoryConfig`, which describes where and
how to search an Active Directory style LDAP server, and knows how to turn
its base DN (or its list of search DNs) into DNS domains and
``userPrincipalName`` candidates.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured, ValidationError

from .errors import AggregatingError, InvalidConfig
from .validators import validate_upn

logger = logging.getLogger(__name__)


class SecurityType(enum.Enum):
    """
    The kind of transport security to use when talking to the server.
    """

    NONE = "none"
    TLS = "tls"
    STARTTLS = "starttls"


def domain_from_dn(dn: str) -> str:
    """
    Derive a DNS domain from the ``dc=`` components of ``dn``.

    Example:
        >>> domain_from_dn("DC=Corp,OU=Users,DC=Example,DC=Com")
        'corp.example.com'

    Args:
        dn: a distinguished name.

    Raises:
        InvalidConfig: ``dn`` has no ``dc=`` components.

    Returns:
        The dotted, lower-cased domain.

    """
    domain = ""
    for component in dn.lower().split(","):
        trimmed = component.strip()
        if trimmed.startswith("dc="):
            domain = f"{domain}.{trimmed[3:]}"
    if len(domain) <= 1:
        raise InvalidConfig(dn)
    return domain[1:]


def is_email_address(value: str) -> bool:
    try:
        validate_upn(value)
    except ValidationError:
        return False
    return True


@dataclass(frozen=True)
class DirectoryConfig:
    """
    Settings for searching an Active Directory server.

    Instances are immutable; build one per server and share it.

    Args:
        server: hostname of the LDAP server.
        port: TCP port of the LDAP server.
        base_dn: the default search root, e.g. ``dc=corp,dc=example,dc=com``.

    Keyword Args:
        search_dn: search roots to use instead of ``base_dn``.
        security: the transport security the connection should use.

    """

    server: str = ""
    port: int = 389
    base_dn: str = ""
    search_dn: tuple[str, ...] = field(default_factory=tuple)
    security: SecurityType = SecurityType.NONE

    def __post_init__(self) -> None:
        # Accept a single DN, any iterable of DNs, or None; store a tuple
        search_dn = self.search_dn
        if isinstance(search_dn, str):
            search_dn = (search_dn,) if search_dn else ()
        object.__setattr__(self, "search_dn", tuple(search_dn or ()))

    @classmethod
    def from_settings(cls, key: str = "default") -> "DirectoryConfig":
        """
        Build a :py:class:`DirectoryConfig` from ``settings.LDAP_SERVERS[key]``.

        Recognized keys are ``basedn`` (required), ``searchdn``, ``server``,
        ``port`` and ``security`` (``none``, ``tls`` or ``starttls``).

        Args:
            key: the name of the server in ``settings.LDAP_SERVERS``.

        Raises:
            ImproperlyConfigured: the setting is missing or invalid.

        Returns:
            A new :py:class:`DirectoryConfig`.

        """
        try:
            config: dict[str, Any] = settings.LDAP_SERVERS[key]
        except AttributeError as e:
            msg = "settings.LDAP_SERVERS does not exist!"
            raise ImproperlyConfigured(msg) from e
        except KeyError as e:
            msg = f"settings.LDAP_SERVERS has no key '{key}'"
            raise ImproperlyConfigured(msg) from e
        try:
            base_dn = config["basedn"]
        except KeyError as e:
            msg = f"settings.LDAP_SERVERS['{key}'] has no 'basedn' key"
            raise ImproperlyConfigured(msg) from e
        security_name = str(config.get("security", "none")).lower()
        try:
            security = SecurityType(security_name)
        except ValueError as e:
            msg = (
                f"settings.LDAP_SERVERS['{key}']['security'] must be one of "
                f"{', '.join(s.value for s in SecurityType)}, not '{security_name}'"
            )
            raise ImproperlyConfigured(msg) from e
        default_port = 636 if security == SecurityType.TLS else 389
        try:
            port = int(config.get("port", default_port))
        except (TypeError, ValueError) as e:
            msg = (
                f"settings.LDAP_SERVERS['{key}']['port'] must be an integer, "
                f"not '{config['port']}'"
            )
            raise ImproperlyConfigured(msg) from e
        return cls(
            server=config.get("server", ""),
            port=port,
            base_dn=base_dn,
            search_dn=config.get("searchdn") or (),
            security=security,
        )

    @property
    def url(self) -> str:
        scheme = "ldaps" if self.security == SecurityType.TLS else "ldap"
        return f"{scheme}://{self.server}:{self.port}"

    @property
    def search_roots(self) -> list[str]:
        """
        The DNs searches should start from: :py:attr:`search_dn` if set,
        otherwise just :py:attr:`base_dn`.
        """
        if self.search_dn:
            return list(self.search_dn)
        return [self.base_dn]

    def domain(self) -> str:
        """
        Return the domain derived from :py:attr:`base_dn`.

        Raises:
            InvalidConfig: :py:attr:`base_dn` has no ``dc=`` components.

        """
        return domain_from_dn(self.base_dn)

    def domains(self) -> list[str]:
        """
        Return one domain per search root, in order.

        Search roots that have no ``dc=`` components are skipped.  Duplicate
        domains are kept.

        Raises:
            AggregatingError: no search root yielded a domain.  The error holds
                one message per bad search root.

        Returns:
            The derived domains.

        """
        errors = AggregatingError()
        answer: list[str] = []
        for dn in self.search_roots:
            try:
                answer.append(domain_from_dn(dn))
            except InvalidConfig as e:
                errors.add_error(e)
        if not answer:
            raise errors
        if errors:
            logger.info(
                "ldapdirectory.config.domains.partial domains=%s errors=%s",
                ",".join(answer),
                len(errors),
            )
        return answer

    def upn(self, username: str) -> str:
        """
        Return the ``userPrincipalName`` for ``username``.

        If ``username`` is already an email address it is returned unchanged,
        otherwise the domain from :py:meth:`domain` is appended.

        Raises:
            InvalidConfig: :py:attr:`base_dn` has no ``dc=`` components.

        """
        if is_email_address(username):
            return username
        return f"{username}@{self.domain()}"

    def upns(self, username: str) -> list[str]:
        """
        Return the candidate ``userPrincipalName`` values for ``username``, one
        per search root domain, or just ``username`` if it is already an email
        address.

        Raises:
            AggregatingError: no search root yielded a domain.

        """
        if is_email_address(username):
            return [username]
        return [f"{username}@{domain}" for domain in self.domains()]
