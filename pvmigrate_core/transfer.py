# coding=utf-8
"""Runs rsync inside the transfer workload until it succeeds or retries run out.

This is the only retry boundary of the copy step itself: the engine never
re-runs a failed strategy, it moves on to the next one.
"""
import argparse
import logging
import subprocess
import sys
import time

from pvmigrate_core import constants, utils

logger = logging.getLogger(__name__)


def build_rsync_command(delete_extraneous_files=False, preserve_ownership=True, ssh_host=None,
                        ssh_port=constants.SSH_PORT, connect_timeout=constants.SSH_CONNECT_TIMEOUT_SEC,
                        key_file=None):
    cmd = ["rsync", "-avzh", "--progress"]
    if delete_extraneous_files:
        cmd.append("--delete")
    if not preserve_ownership:
        cmd.extend(["--no-o", "--no-g"])

    if ssh_host:
        ssh = ["ssh", "-p", str(ssh_port),
               "-o", "StrictHostKeyChecking=no",
               "-o", "UserKnownHostsFile=/dev/null",
               "-o", f"ConnectTimeout={connect_timeout}"]
        if key_file:
            ssh.extend(["-i", key_file])
        cmd.extend(["-e", " ".join(ssh), f"root@{ssh_host}:{constants.SOURCE_MOUNT_PATH}/"])
    else:
        cmd.append(f"{constants.SOURCE_MOUNT_PATH}/")

    cmd.append(f"{constants.DEST_MOUNT_PATH}/")
    return cmd


def run_command(cmd):
    # output goes straight to the container log, it is never parsed
    return subprocess.run(cmd).returncode


class TransferProtocol:

    def __init__(self, command, max_retries=constants.RSYNC_MAX_RETRIES,
                 retry_interval=constants.RSYNC_RETRY_INTERVAL_SEC, runner=None, sleep=None):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.command = command
        self.max_retries = max_retries
        self.retry_interval = retry_interval
        self.runner = runner or run_command
        self.sleep = sleep or time.sleep
        self.attempts = 0

    def run(self):
        rc = 1
        for attempt in range(1, self.max_retries + 1):
            self.attempts = attempt
            try:
                rc = self.runner(self.command)
            except OSError as e:
                logger.error(f"Failed to start {self.command[0]}: {e}")
                rc = 127
            if rc == 0:
                logger.info(f"rsync succeeded on attempt {attempt}/{self.max_retries}")
                return 0
            logger.warning(f"rsync attempt {attempt}/{self.max_retries} failed with exit code {rc}")
            if attempt < self.max_retries:
                logger.info(f"waiting {self.retry_interval} seconds before trying again")
                self.sleep(self.retry_interval)

        logger.error(f"rsync job failed after {self.max_retries} retries")
        return rc


def build_command_args(delete_extraneous_files, preserve_ownership, endpoint=None, key_file=None,
                       max_retries=constants.RSYNC_MAX_RETRIES,
                       retry_interval=constants.RSYNC_RETRY_INTERVAL_SEC):
    """The container command of a transfer workload, parsed back by main()."""
    args = [constants.RSYNC_COMMAND_NAME,
            "--max-retries", str(max_retries),
            "--retry-interval", str(retry_interval)]
    if delete_extraneous_files:
        args.append("--delete")
    if not preserve_ownership:
        args.append("--no-chown")
    if endpoint is not None:
        args.extend(["--ssh-host", endpoint.host,
                     "--ssh-port", str(endpoint.port),
                     "--connect-timeout", str(constants.SSH_CONNECT_TIMEOUT_SEC)])
        if key_file:
            args.extend(["--key-file", key_file])
    return args


def _parser():
    parser = argparse.ArgumentParser(description='Copy /source to /dest with rsync, retrying on failure')
    parser.add_argument('--max-retries', type=int, default=constants.RSYNC_MAX_RETRIES, dest='max_retries')
    parser.add_argument('--retry-interval', type=float, default=constants.RSYNC_RETRY_INTERVAL_SEC,
                        dest='retry_interval')
    parser.add_argument('--delete', help='Delete extraneous files on the destination', action='store_true')
    parser.add_argument('--no-chown', help='Do not preserve owner and group', action='store_true',
                        dest='no_chown')
    parser.add_argument('--ssh-host', help='Pull the source over ssh from this host', dest='ssh_host')
    parser.add_argument('--ssh-port', type=int, default=constants.SSH_PORT, dest='ssh_port')
    parser.add_argument('--connect-timeout', type=int, default=constants.SSH_CONNECT_TIMEOUT_SEC,
                        dest='connect_timeout')
    parser.add_argument('--key-file', dest='key_file')
    return parser


def main(argv=None):
    utils.get_logger()
    args = _parser().parse_args(argv)
    cmd = build_rsync_command(
        delete_extraneous_files=args.delete,
        preserve_ownership=not args.no_chown,
        ssh_host=args.ssh_host,
        ssh_port=args.ssh_port,
        connect_timeout=args.connect_timeout,
        key_file=args.key_file,
    )
    protocol = TransferProtocol(cmd, max_retries=args.max_retries, retry_interval=args.retry_interval)
    sys.exit(protocol.run())


if __name__ == '__main__':
    main()
