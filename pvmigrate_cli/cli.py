from pvmigrate_cli.clibase import CLIWrapperBase, list_type, timeout_type
from pvmigrate_core import constants, utils
from pvmigrate_core.strategies import DEFAULT_STRATEGIES, STRATEGIES
import logging
import sys

class CLIWrapper(CLIWrapperBase):

    def __init__(self):
        self.logger = utils.get_logger()
        self.init_parser()
        self.init_migrate()
        super().__init__()

    def init_migrate(self):
        subcommand = self.add_command('migrate', 'Migrate data from one Kubernetes PersistentVolumeClaim to another', aliases=['m',])
        subcommand.add_argument('source', help='Name of the source PersistentVolumeClaim', type=str)
        subcommand.add_argument('dest', help='Name of the destination PersistentVolumeClaim', type=str)
        subcommand.add_argument('-k', '--source-kubeconfig', help='Path of the kubeconfig file of the source PVC', type=str, dest='source_kubeconfig', required=False)
        subcommand.add_argument('-c', '--source-context', help='Context in the kubeconfig file of the source PVC', type=str, dest='source_context', required=False)
        subcommand.add_argument('-n', '--source-namespace', help='Namespace of the source PVC, defaults to the namespace of the source context', type=str, dest='source_namespace', required=False)
        subcommand.add_argument('-K', '--dest-kubeconfig', help='Path of the kubeconfig file of the destination PVC', type=str, dest='dest_kubeconfig', required=False)
        subcommand.add_argument('-C', '--dest-context', help='Context in the kubeconfig file of the destination PVC', type=str, dest='dest_context', required=False)
        subcommand.add_argument('-N', '--dest-namespace', help='Namespace of the destination PVC, defaults to the namespace of the destination context', type=str, dest='dest_namespace', required=False)
        subcommand.add_argument('-d', '--dest-delete-extraneous-files', help="Delete extraneous files on the destination by using rsync's '--delete' flag", dest='delete_extraneous_files', action='store_true')
        subcommand.add_argument('-i', '--ignore-mounted', help='Do not fail if the source or destination PVC is mounted', dest='ignore_mounted', action='store_true')
        subcommand.add_argument('-o', '--no-chown', help='Omit chown on rsync', dest='no_chown', action='store_true')
        subcommand.add_argument('-a', '--ssh-key-algorithm', help='SSH key algorithm to be used', type=str, default=constants.DEFAULT_KEY_ALGORITHM, choices=constants.KEY_ALGORITHMS, dest='key_algorithm')
        subcommand.add_argument('-s', '--strategies', help=f"The comma-separated list of strategies to be used in the given order, available: {','.join(STRATEGIES)}", type=list_type, default=tuple(DEFAULT_STRATEGIES), dest='strategies')
        subcommand.add_argument('-r', '--rsync-image', help='Image to use for running rsync', type=str, default=constants.DEFAULT_RSYNC_IMAGE, dest='rsync_image')
        subcommand.add_argument('-S', '--sshd-image', help='Image to use for running the sshd server', type=str, default=constants.DEFAULT_SSHD_IMAGE, dest='sshd_image')
        subcommand.add_argument('--source-create-psp', help='Create a PodSecurityPolicy and grant it to the workloads on the source side', dest='source_create_psp', action='store_true')
        subcommand.add_argument('--dest-create-psp', help='Create a PodSecurityPolicy and grant it to the workloads on the destination side', dest='dest_create_psp', action='store_true')
        subcommand.add_argument('--job-timeout', help='Seconds to wait for the rsync job to complete', type=timeout_type, default=constants.JOB_COMPLETION_TIMEOUT_SEC, dest='job_timeout')

    def run(self):
        args = self.parser.parse_args()
        if args.debug:
            self.logger.setLevel(logging.DEBUG)
        else:
            self.logger.setLevel(logging.INFO)

        logging.getLogger("urllib3.connectionpool").setLevel(logging.WARNING)

        ret = ""
        if args.command in ['migrate', 'm']:
            ret = self.migrate(args.command, args)
        else:
            self.parser.print_help()

        if not ret:
            return False

        print(ret)
        return True


def main():
    cli = CLIWrapper()
    if not cli.run():
        sys.exit(1)
