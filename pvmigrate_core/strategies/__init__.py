from pvmigrate_core.strategies.base import Strategy
from pvmigrate_core.strategies.mnt2 import Mnt2Strategy
from pvmigrate_core.strategies.ssh import LbSvcStrategy, NodePortStrategy, SvcStrategy

# closed set of variants, looked up by the names operators pass
STRATEGIES = {
    Mnt2Strategy.name: Mnt2Strategy,
    SvcStrategy.name: SvcStrategy,
    LbSvcStrategy.name: LbSvcStrategy,
    NodePortStrategy.name: NodePortStrategy,
}

DEFAULT_STRATEGIES = [Mnt2Strategy.name, SvcStrategy.name, LbSvcStrategy.name]

__all__ = [
    "Strategy",
    "Mnt2Strategy",
    "SvcStrategy",
    "LbSvcStrategy",
    "NodePortStrategy",
    "STRATEGIES",
    "DEFAULT_STRATEGIES",
]
