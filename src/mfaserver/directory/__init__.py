"""Directory (LDAP) authentication gateway."""

from mfaserver.directory.ldap import LdapAuthenticator, bind_dn

__all__ = ["LdapAuthenticator", "bind_dn"]
