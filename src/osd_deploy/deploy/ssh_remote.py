"""
SSHRemoteHost - Reach the deploy host over SSH.

Targets: the host running nginx and the package store (sych.local by default)
Strategy: ssh pre-flight → optional mkdir + rsync disk copy → ssh -L tunnel
to the store
"""

import logging
import shlex
import socket
import subprocess
import time
from pathlib import Path
from typing import Optional

from .exceptions import ConnectivityError, TransferError

LOGGER = logging.getLogger(__name__)


class SSHRemoteHost:
    """
    Runs remote commands with ssh and copies files with rsync.

    Requirements: key-based SSH (BatchMode), rsync on both ends
    """

    def __init__(
        self,
        user: str,
        host: str,
        ssh_port: int = 22,
        connect_timeout: int = 10
    ):
        """
        Initialize SSH remote host.

        Args:
            user: SSH username (e.g., "archer")
            host: IP or hostname (e.g., "sych.local")
            ssh_port: SSH port (default: 22)
            connect_timeout: Seconds before an ssh connection attempt fails
        """
        self.user = user
        self.host = host
        self.ssh_port = ssh_port
        self.connect_timeout = connect_timeout

    @property
    def destination(self) -> str:
        return f"{self.user}@{self.host}"

    def _port_flag(self) -> str:
        return f"-p {self.ssh_port} " if self.ssh_port != 22 else ""

    def _ssh_cmd(self, command: str, batch: bool = False) -> list[str]:
        """Build SSH command with custom port."""
        cmd = ["ssh", "-p", str(self.ssh_port)]
        if batch:
            cmd += [
                "-o", "BatchMode=yes",  # Fail immediately if a passphrase/password is needed
                "-o", f"ConnectTimeout={self.connect_timeout}",
                "-o", "StrictHostKeyChecking=no",
            ]
        cmd += [self.destination, command]
        return cmd

    def _run_ssh(self, command: str, check: bool = True, batch: bool = False) -> subprocess.CompletedProcess:
        """Run SSH command and return result."""
        cmd = self._ssh_cmd(command, batch=batch)
        LOGGER.debug("Running: %s", " ".join(cmd))
        return subprocess.run(cmd, check=check, capture_output=True, text=True)

    def check_connectivity(self) -> None:
        """
        Verify non-interactive SSH works.

        Raises:
            ConnectivityError: If the host cannot be reached without a prompt
        """
        result = self._run_ssh("echo 'SSH OK'", check=False, batch=True)

        if result.returncode != 0:
            detail = f"ssh said: {result.stderr.strip()}\n" if result.stderr else ""
            raise ConnectivityError(
                f"\n"
                f"==============================================\n"
                f"  SSH CONNECTION FAILED\n"
                f"==============================================\n\n"
                f"Could not connect to: {self.destination}\n"
                f"{detail}\n"
                f"Possible causes:\n"
                f"  1. SSH key requires passphrase but ssh-agent not running\n"
                f"  2. SSH key not added to agent\n"
                f"  3. Host unreachable (check /etc/hosts or network)\n"
                f"  4. SSH key not authorized on remote host\n\n"
                f"To fix passphrase-protected SSH keys:\n"
                f"  eval $(ssh-agent)     # Start ssh-agent (if not running)\n"
                f"  ssh-add ~/.ssh/id_*   # Add your key (will prompt for passphrase once)\n\n"
                f"To test manually:\n"
                f"  ssh {self._port_flag()}{self.destination}\n"
            )

    def ensure_directory(self, path: str) -> None:
        """
        Create path (and parents) on the remote host.

        Raises:
            TransferError: If mkdir fails
        """
        try:
            self._run_ssh(shlex.join(["mkdir", "-p", path]))
        except subprocess.CalledProcessError as e:
            raise TransferError(
                f"Could not create {path} on {self.host}\n"
                f"Error: {e.stderr.strip() if e.stderr else str(e)}\n\n"
                f"Verify write permissions: ssh {self._port_flag()}{self.destination} ls -ld {shlex.quote(str(Path(path).parent))}"
            ) from e

    def copy_file(self, source: Path, remote_path: str) -> None:
        """
        Copy a local file to remote_path with rsync (mode 644).

        Raises:
            TransferError: If rsync fails
        """
        rsync_cmd = [
            "rsync",
            "-z",
            "--chmod=F644",
            "-e", f"ssh -p {self.ssh_port}",
            str(source),
            f"{self.destination}:{shlex.quote(remote_path)}",
        ]
        LOGGER.debug("Running: %s", " ".join(rsync_cmd))

        try:
            subprocess.run(rsync_cmd, check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as e:
            raise TransferError(
                f"rsync failed to {self.host}\n"
                f"Command: {' '.join(rsync_cmd)}\n"
                f"Error: {e.stderr.strip() if e.stderr else str(e)}\n\n"
                f"Troubleshooting:\n"
                f"  1. Verify SSH access: ssh {self._port_flag()}{self.destination}\n"
                f"  2. Check disk space on host: ssh {self._port_flag()}{self.destination} df -h"
            ) from e


def find_free_port() -> int:
    """Ask the OS for an unused local TCP port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class SSHTunnel:
    """
    Forward a local port to a service only reachable from the deploy host.

    The package store listens on the host's loopback interface, so the
    publisher connects through ``ssh -N -L``::

        with SSHTunnel(remote, "127.0.0.1", 8085) as tunnel:
            client = redis.Redis(host="127.0.0.1", port=tunnel.local_port)
    """

    def __init__(
        self,
        remote: SSHRemoteHost,
        target_host: str,
        target_port: int,
        local_port: Optional[int] = None,
        ready_attempts: int = 20,
        ready_interval: float = 0.25
    ):
        self.remote = remote
        self.target_host = target_host
        self.target_port = target_port
        self.local_port = local_port
        self.ready_attempts = ready_attempts
        self.ready_interval = ready_interval
        self._process: Optional[subprocess.Popen] = None

    def _tunnel_cmd(self) -> list[str]:
        return [
            "ssh",
            "-p", str(self.remote.ssh_port),
            "-N",
            "-o", "BatchMode=yes",
            "-o", "ExitOnForwardFailure=yes",
            "-o", f"ConnectTimeout={self.remote.connect_timeout}",
            "-L", f"127.0.0.1:{self.local_port}:{self.target_host}:{self.target_port}",
            self.remote.destination,
        ]

    def _port_open(self) -> bool:
        try:
            with socket.create_connection(("127.0.0.1", self.local_port), timeout=1):
                return True
        except OSError:
            return False

    def open(self) -> int:
        """
        Start the tunnel and wait until the local port accepts connections.

        Returns:
            Local port forwarding to the store

        Raises:
            ConnectivityError: If ssh exits or the port never opens
        """
        if self.local_port is None:
            self.local_port = find_free_port()

        cmd = self._tunnel_cmd()
        LOGGER.debug("Opening tunnel: %s", " ".join(cmd))
        self._process = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True
        )

        for _ in range(self.ready_attempts):
            if self._process.poll() is not None:
                process, self._process = self._process, None
                stderr = ""
                if process.stderr is not None:
                    stderr = process.stderr.read()
                    process.stderr.close()
                raise ConnectivityError(
                    f"SSH tunnel to {self.target_host}:{self.target_port} via "
                    f"{self.remote.destination} exited early\n"
                    f"Error: {stderr.strip() or 'no output'}\n\n"
                    f"Check that the store is listening on the deploy host:\n"
                    f"  ssh {self.remote._port_flag()}{self.remote.destination} "
                    f"\"ss -ltn | grep {self.target_port}\""
                )
            if self._port_open():
                return self.local_port
            time.sleep(self.ready_interval)

        self.close()
        raise ConnectivityError(
            f"SSH tunnel to {self.target_host}:{self.target_port} did not come up "
            f"on local port {self.local_port}\n\n"
            f"Retry with --no-tunnel if the store is directly reachable."
        )

    def close(self) -> None:
        """Terminate the ssh process (idempotent)."""
        if self._process is None:
            return
        process, self._process = self._process, None
        process.terminate()
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
        if process.stderr is not None:
            process.stderr.close()

    def __enter__(self) -> "SSHTunnel":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
