# coding=utf-8
import logging

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, rsa

from pvmigrate_core import constants
from pvmigrate_core.exceptions import ConfigurationError, KeyGenerationError
from pvmigrate_core.models.resources import CredentialPair

logger = logging.getLogger(__name__)


def _ed25519_key():
    return ed25519.Ed25519PrivateKey.generate()


def _rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=constants.RSA_KEY_SIZE)


_GENERATORS = {
    constants.KEY_ALGORITHM_ED25519: _ed25519_key,
    constants.KEY_ALGORITHM_RSA: _rsa_key,
}


def validate_algorithm(algorithm):
    if algorithm not in _GENERATORS:
        raise ConfigurationError(
            f"unsupported ssh key algorithm '{algorithm}', expected one of: {', '.join(constants.KEY_ALGORITHMS)}")


def generate(algorithm=constants.DEFAULT_KEY_ALGORITHM):
    """Generates a throwaway ssh key pair.

    The public half is an authorized_keys line, the private half is in
    OpenSSH PEM format so both sshd and the ssh client accept them as is.
    """
    generator = _GENERATORS.get(algorithm)
    if generator is None:
        raise KeyGenerationError(f"unsupported ssh key algorithm '{algorithm}'")

    try:
        private_key = generator()
        private_bytes = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.OpenSSH,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public_bytes = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.OpenSSH,
            format=serialization.PublicFormat.OpenSSH,
        )
    except (ValueError, TypeError, OSError) as e:
        raise KeyGenerationError(f"failed to generate {algorithm} key pair: {e}") from e

    logger.debug("Generated %s key pair", algorithm)
    return CredentialPair(
        algorithm=algorithm,
        public_key=public_bytes.decode("utf-8"),
        private_key=private_bytes.decode("utf-8"),
    )
