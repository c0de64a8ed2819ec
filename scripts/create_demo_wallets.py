"""Print faucet-funded demo wallets as .env lines.

Runs against XRPL_JSON_RPC_URL unless XRPL_MODE=mock.
"""

from xpay.config import settings
from xpay.observability import setup_logging
from xpay.xrpl_service import XrplService

NAMES = ["MERCHANT", "ISSUER", "ALICE", "BOB"]


def mk(service: XrplService, name: str) -> None:
    wallet = service.generate_wallet()
    balance = service.fund_wallet(wallet)
    print(f"{name}_SEED={wallet.seed}")
    print(f"{name}_ADDRESS={wallet.classic_address}")
    print(f"# {name} balance: {balance} XRP")
    print()


if __name__ == "__main__":
    setup_logging("WARNING")
    service = XrplService(settings)
    for n in NAMES:
        mk(service, n)
