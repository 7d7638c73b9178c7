import errno
import sys

from outlinekit.errnames import errno_name, system_errno_name, windows_errno_name


def test_windows_names():
    assert windows_errno_name(10061) == "ECONNREFUSED"
    assert windows_errno_name(10054) == "ECONNRESET"
    assert windows_errno_name(10060) == "ETIMEDOUT"
    assert windows_errno_name(1) == ""


def test_unknown_errno_falls_back_to_number():
    assert errno_name(99999) == "Error 99999 (0x1869f)"


def test_system_name_matches_platform():
    if sys.platform == "win32":
        assert system_errno_name(10061) == "ECONNREFUSED"
    else:
        assert system_errno_name(errno.ECONNREFUSED) == "ECONNREFUSED"
        assert errno_name(errno.ECONNRESET) == "ECONNRESET"