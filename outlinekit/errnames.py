"""Symbolic names for socket error numbers."""

from __future__ import annotations

import errno as _errno
import sys

__all__ = ["errno_name", "system_errno_name", "windows_errno_name"]

_WINDOWS_SOCKET_ERRORS = {
    10004: "EINTR",
    10009: "EBADF",
    10013: "EACCES",
    10014: "EFAULT",
    10022: "EINVAL",
    10024: "EMFILE",
    10035: "EWOULDBLOCK",
    10036: "EINPROGRESS",
    10037: "EALREADY",
    10038: "ENOTSOCK",
    10039: "EDESTADDRREQ",
    10040: "EMSGSIZE",
    10041: "EPROTOTYPE",
    10042: "ENOPROTOOPT",
    10043: "EPROTONOSUPPORT",
    10044: "ESOCKTNOSUPPORT",
    10045: "EOPNOTSUPP",
    10046: "EPFNOSUPPORT",
    10047: "EAFNOSUPPORT",
    10048: "EADDRINUSE",
    10049: "EADDRNOTAVAIL",
    10050: "ENETDOWN",
    10051: "ENETUNREACH",
    10052: "ENETRESET",
    10053: "ECONNABORTED",
    10054: "ECONNRESET",
    10055: "ENOBUFS",
    10056: "EISCONN",
    10057: "ENOTCONN",
    10058: "ESHUTDOWN",
    10059: "ETOOMANYREFS",
    10060: "ETIMEDOUT",
    10061: "ECONNREFUSED",
    10062: "ELOOP",
    10063: "ENAMETOOLONG",
    10064: "EHOSTDOWN",
    10065: "EHOSTUNREACH",
    10066: "ENOTEMPTY",
    10067: "EPROCLIM",
    10068: "EUSERS",
    10069: "EDQUOT",
    10070: "ESTALE",
    10071: "EREMOTE",
    10101: "EDISCON",
    10102: "ENOMORE",
    10103: "ECANCELLED",
    10104: "EINVALIDPROCTABLE",
    10105: "EINVALIDPROVIDER",
    10106: "EPROVIDERFAILEDINIT",
    10112: "EREFUSED",
}


def windows_errno_name(errno):
    """Return the POSIX-style name of a Windows socket error, or ''."""
    return _WINDOWS_SOCKET_ERRORS.get(errno, "")


def system_errno_name(errno):
    """Return the platform's name for ``errno``, or '' if it has none."""
    if sys.platform == "win32":
        return windows_errno_name(errno)
    return _errno.errorcode.get(errno, "")


def errno_name(errno):
    """Return a name for ``errno``, falling back to its number in decimal and hex."""
    name = system_errno_name(errno)
    if name:
        return name
    return f"Error {int(errno)} (0x{int(errno):x})"