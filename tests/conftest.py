import sys
from pathlib import Path

import pytest

# Ensure the package is importable without installation when running tests locally
pkg_src = Path(__file__).resolve().parents[1] / "src"
if str(pkg_src) not in sys.path:
    sys.path.insert(0, str(pkg_src))

from singularity_vaults import Chain, Deployment, PoolRegistry, deploy_protocol, load_registry  # noqa: E402
from singularity_vaults.testing import AccountPool, get_weth, parse_tokens  # noqa: E402

USDC_POOL = "0x4F7c28cCb0F1Dbd1388209C67eEc234273C878Bd"
WETH_POOL = "0x3DA9D911301f8144bdF5c3c67886e5373DCdff8e"


@pytest.fixture
def chain() -> Chain:
    return Chain()


@pytest.fixture
def registry() -> PoolRegistry:
    return load_registry()


@pytest.fixture
def deployment(chain: Chain, registry: PoolRegistry) -> Deployment:
    return deploy_protocol(chain, registry)


@pytest.fixture
def deployer(deployment: Deployment) -> str:
    return deployment.deployer


@pytest.fixture
def singularity(deployment: Deployment):
    return deployment.singularity


@pytest.fixture
def weth(deployment: Deployment):
    return deployment.weth


@pytest.fixture
def usdc(deployment: Deployment):
    return deployment.tokens["USDC"]


@pytest.fixture
def accounts(chain: Chain) -> AccountPool:
    """Depositor accounts; account 0 deploys and the last one is the token holder."""

    return AccountPool(chain.accounts[1:-1])


@pytest.fixture
def holder(chain: Chain, deployment: Deployment, usdc) -> str:
    """Large USDC holder depositors are funded from."""

    whale = chain.accounts[-1]
    usdc.mint(whale, parse_tokens(1_000_000, 6), sender=deployment.deployer)
    return whale


@pytest.fixture
def eth_bonus(deployment: Deployment, singularity, weth, deployer: str) -> int:
    """Stream 10 WETH over 10,000 blocks to the WETH pool."""

    amount = parse_tokens(10)
    get_weth(weth, deployer, amount)
    weth.approve(singularity.address, amount, sender=deployer)
    singularity.fund_eth_bonus(WETH_POOL, amount, 10_000, sender=deployer)
    return amount


@pytest.fixture
def usdc_pool() -> str:
    return USDC_POOL


@pytest.fixture
def weth_pool() -> str:
    return WETH_POOL
