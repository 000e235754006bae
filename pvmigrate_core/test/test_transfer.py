import pytest
from unittest.mock import patch

from pvmigrate_core import transfer
from pvmigrate_core.models.resources import Endpoint


class ScriptedRunner:
    """Returns the scripted exit codes in order, the last one repeating."""

    def __init__(self, *codes):
        self.codes = list(codes)
        self.calls = []

    def __call__(self, cmd):
        self.calls.append(cmd)
        if len(self.codes) > 1:
            return self.codes.pop(0)
        return self.codes[0]


def test_retries_until_success():
    runner = ScriptedRunner(1, 23, 255, 0)
    sleeps = []
    protocol = transfer.TransferProtocol(["rsync"], max_retries=10, retry_interval=5,
                                         runner=runner, sleep=sleeps.append)

    assert protocol.run() == 0
    assert protocol.attempts == 4
    assert len(runner.calls) == 4
    assert sleeps == [5, 5, 5]


def test_gives_up_after_max_retries():
    runner = ScriptedRunner(12)
    sleeps = []
    protocol = transfer.TransferProtocol(["rsync"], max_retries=3, retry_interval=5,
                                         runner=runner, sleep=sleeps.append)

    assert protocol.run() == 12
    assert len(runner.calls) == 3
    assert sleeps == [5, 5]


def test_first_attempt_succeeds():
    runner = ScriptedRunner(0)
    sleeps = []
    protocol = transfer.TransferProtocol(["rsync"], runner=runner, sleep=sleeps.append)
    assert protocol.run() == 0
    assert len(runner.calls) == 1
    assert sleeps == []


def test_runner_cannot_start():
    def missing(cmd):
        raise FileNotFoundError("rsync")

    protocol = transfer.TransferProtocol(["rsync"], max_retries=2, retry_interval=0, runner=missing,
                                         sleep=lambda s: None)
    assert protocol.run() == 127
    assert protocol.attempts == 2


def test_max_retries_must_be_positive():
    with pytest.raises(ValueError):
        transfer.TransferProtocol(["rsync"], max_retries=0)


def test_build_rsync_command_local():
    assert transfer.build_rsync_command() == ["rsync", "-avzh", "--progress", "/source/", "/dest/"]


def test_build_rsync_command_over_ssh():
    cmd = transfer.build_rsync_command(delete_extraneous_files=True, preserve_ownership=False,
                                       ssh_host="203.0.113.7", ssh_port=30022,
                                       key_file="/root/.ssh/id_ed25519")
    assert cmd[:6] == ["rsync", "-avzh", "--progress", "--delete", "--no-o", "--no-g"]
    assert cmd[6] == "-e"
    assert cmd[7] == ("ssh -p 30022 -o StrictHostKeyChecking=no -o UserKnownHostsFile=/dev/null "
                      "-o ConnectTimeout=5 -i /root/.ssh/id_ed25519")
    assert cmd[8:] == ["root@203.0.113.7:/source/", "/dest/"]


def test_build_command_args():
    args = transfer.build_command_args(delete_extraneous_files=True, preserve_ownership=False,
                                       endpoint=Endpoint("svc.ns1", 22), key_file="/root/.ssh/id_rsa")
    assert args[0] == "pv-migrate-rsync"
    parsed = transfer._parser().parse_args(args[1:])
    assert parsed.max_retries == 10
    assert parsed.retry_interval == 5
    assert parsed.delete
    assert parsed.no_chown
    assert parsed.ssh_host == "svc.ns1"
    assert parsed.ssh_port == 22
    assert parsed.key_file == "/root/.ssh/id_rsa"


def test_build_command_args_local():
    args = transfer.build_command_args(delete_extraneous_files=False, preserve_ownership=True)
    parsed = transfer._parser().parse_args(args[1:])
    assert parsed.ssh_host is None
    assert not parsed.delete
    assert not parsed.no_chown


@pytest.mark.parametrize('codes,exit_code', [
    ((0,), 0),
    ((1, 0), 0),
    ((30,), 30),
])
def test_main(codes, exit_code):
    runner = ScriptedRunner(*codes)
    with patch.object(transfer, "run_command", runner), patch.object(transfer.time, "sleep"):
        with pytest.raises(SystemExit) as exc_info:
            transfer.main(["--max-retries", "2", "--retry-interval", "0", "--ssh-host", "svc.ns1"])
    assert exc_info.value.code == exit_code
    assert runner.calls[0][-2:] == ["root@svc.ns1:/source/", "/dest/"]
