"""
Type aliases for python-ldap search results.
"""

AttributeMap = dict[str, list[bytes]]
LDAPData = tuple[str, AttributeMap]
