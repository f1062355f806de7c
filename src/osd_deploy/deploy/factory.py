"""
RemoteHostFactory - Parse server strings into remote hosts.

Format-based routing:
    user@host              → SSHRemoteHost (port 22)
    user@host:2222         → SSHRemoteHost with custom SSH port
    user@[fe80::1]:2222    → SSHRemoteHost with IPv6
    local://               → None (store reachable directly, no SSH)
"""

from typing import Optional, Tuple


def parse_server_string(server: str) -> Tuple[str, str, int]:
    """
    Split ``user@host[:port]`` into its parts.

    Raises:
        ValueError: If format not recognized
    """
    if '@' not in server:
        raise ValueError(
            f"Unknown server format: {server}\n"
            f"Expected: user@host | user@host:port | user@[ipv6]:port | local://"
        )

    user, host_part = server.split('@', 1)
    if not user or not host_part:
        raise ValueError(f"Malformed server string: {server}")

    if host_part.startswith('['):
        # IPv6: user@[fe80::1] or user@[fe80::1]:2222
        bracket_end = host_part.find(']')
        if bracket_end == -1:
            raise ValueError(f"Malformed IPv6 address: {server}")
        host = host_part[1:bracket_end]
        remainder = host_part[bracket_end + 1:]
        port_str = remainder[1:] if remainder.startswith(':') else None
    elif ':' in host_part:
        host, port_str = host_part.rsplit(':', 1)
    else:
        host, port_str = host_part, None

    if port_str is None:
        return user, host, 22
    try:
        port = int(port_str)
    except ValueError:
        raise ValueError(f"Invalid SSH port in server string: {server}") from None
    if not 0 < port < 65536:
        raise ValueError(f"SSH port out of range in server string: {server}")
    return user, host, port


class RemoteHostFactory:
    """Factory for parsing server strings into remote hosts."""

    @staticmethod
    def from_server_string(server: str, connect_timeout: int = 10) -> Optional['SSHRemoteHost']:
        """
        Return an SSHRemoteHost for ``user@host[:port]``, or None for ``local://``.

        Example:
            remote = RemoteHostFactory.from_server_string("archer@sych.local")
            remote.check_connectivity()
        """
        # Lazy import to avoid circular dependencies
        from .ssh_remote import SSHRemoteHost

        if server == "local://":
            return None

        user, host, port = parse_server_string(server)
        return SSHRemoteHost(user, host, ssh_port=port, connect_timeout=connect_timeout)
