import os

from setuptools import setup, find_packages

from setuptools.command.install import install as _install


def _post_install():
    from subprocess import getstatusoutput
    _, out = getstatusoutput('activate-global-python-argcomplete --user')
    if out:
        print(out)


class install(_install):
    def run(self):
        _install.run(self)
        self.execute(_post_install, (), msg="Running post install task")


def get_env_var(name, default=None):
    if not name:
        return False
    with open("pvmigrate_core/env_var", "r", encoding="utf-8") as fh:
        lines = fh.readlines()
    data = {}
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        k, _, v = line.partition("=")
        data[k.strip()] = v.strip()
    return data.get(name, default)


def get_long_description():
    with open("README.md", "r", encoding="utf-8") as fh:
        return fh.read()


def get_requirements():
    with open("requirements.txt", "r", encoding="utf-8") as fh:
        return [line.strip() for line in fh.readlines() if line.strip() and not line.startswith("#")]


COMMAND_NAME = get_env_var("PV_MIGRATE_COMMAND_NAME", "pv-migrate")
VERSION = get_env_var("PV_MIGRATE_VERSION", "0")


setup(
    name=COMMAND_NAME,
    version=VERSION,
    python_requires='>= 3.9',
    packages=find_packages(),
    description='CLI for migrating data between Kubernetes PersistentVolumeClaims',
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    install_requires=get_requirements(),
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            f'{COMMAND_NAME}=pvmigrate_cli.cli:main',
            'pv-migrate-rsync=pvmigrate_core.transfer:main',
        ]
    },
    include_package_data=True,
    package_data={
        'pvmigrate_core': ["env_var", "templates/*.j2"],
    },
    # cmdclass={'install': install},
)
