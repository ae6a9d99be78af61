import re

from django.core import validators


class UserPrincipalNameValidator(validators.EmailValidator):
    """
    Matches a ``userPrincipalName`` such as::

        alice@example.com

    or one whose domain is a single DNS label::

        alice@corp

    Django's :py:class:`~django.core.validators.EmailValidator` insists on a
    dotted domain, but Active Directory UPN suffixes need not have one.
    """

    #: A single DNS label: letters, digits and inner hyphens.
    LABEL_REGEX = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)\Z", re.IGNORECASE)

    def validate_domain_part(self, domain_part: str) -> bool:
        if super().validate_domain_part(domain_part):
            return True
        return bool(self.LABEL_REGEX.match(domain_part))


validate_upn = UserPrincipalNameValidator()
