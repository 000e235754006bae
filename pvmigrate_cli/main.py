#!/usr/bin/env python
# coding=utf-8
import sys

from pvmigrate_cli.cli import CLIWrapper


if __name__ == '__main__':
    cli = CLIWrapper()
    if not cli.run():
        sys.exit(1)
