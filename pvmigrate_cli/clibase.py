#!/usr/bin/env python
# PYTHON_ARGCOMPLETE_OK

import argparse

import argcomplete

from pvmigrate_core import constants, engine, utils
from pvmigrate_core.exceptions import MigrationError
from pvmigrate_core.models.migration import Options
from pvmigrate_core.models.volume import VolumeReference


def list_type(arg):
    return tuple(item.strip() for item in arg.split(',') if item.strip())


def timeout_type(arg):
    value = float(arg)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"Timeout '{arg}' must be a positive number of seconds")
    return value


class CLIWrapperBase:

    def __init__(self):
        argcomplete.autocomplete(self.parser)

    def init_parser(self):
        self.parser = argparse.ArgumentParser(
            prog=constants.PV_MIGRATE_CLI_NAME,
            description='Migrate data from one Kubernetes PersistentVolumeClaim to another')
        self.parser.add_argument("-d", '--debug', help='Print debug messages', required=False, action='store_true')
        self.parser.add_argument('--version', action='version',
                                 version=f"%(prog)s {constants.PV_MIGRATE_VERSION}")
        self.subparser = self.parser.add_subparsers(dest='command')

    def add_command(self, command, help, aliases=None):
        aliases = aliases or []
        return self.subparser.add_parser(command, description=help, help=help, aliases=aliases)

    def build_options(self, args):
        return Options(
            delete_extraneous_files=args.delete_extraneous_files,
            ignore_mounted=args.ignore_mounted,
            preserve_ownership=not args.no_chown,
            key_algorithm=args.key_algorithm,
            strategies=args.strategies,
            rsync_image=args.rsync_image,
            sshd_image=args.sshd_image,
            source_create_policy=args.source_create_psp,
            dest_create_policy=args.dest_create_psp,
            job_timeout=args.job_timeout,
        )

    def migrate(self, sub_command, args):
        options = self.build_options(args)
        if options.delete_extraneous_files:
            self.logger.info("Extraneous files will be deleted from the destination")

        try:
            source_kube = utils.get_k8s_client(args.source_kubeconfig, args.source_context)
            dest_kube = utils.get_k8s_client(args.dest_kubeconfig, args.dest_context)
            source = VolumeReference(kube=source_kube, namespace=args.source_namespace or source_kube.namespace,
                                     name=args.source)
            dest = VolumeReference(kube=dest_kube, namespace=args.dest_namespace or dest_kube.namespace,
                                   name=args.dest)
            summary = engine.run_migration(source, dest, options)
        except MigrationError as e:
            self.logger.error(e.message)
            return False
        return f"Migration {summary.instance_id} finished using strategy '{summary.strategy}'"
