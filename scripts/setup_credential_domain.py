import os

from xpay.config import settings
from xpay.credential_service import CredentialService
from xpay.models import AcceptedCredential
from xpay.observability import setup_logging
from xpay.xrpl_service import XrplService

issuer_seed = os.getenv("ISSUER_SEED")
subject_seed = os.getenv("SUBJECT_SEED")

# Seeds come from scripts/create_demo_wallets.py output saved to .env.
if not issuer_seed or not subject_seed:
    raise RuntimeError("Set ISSUER_SEED and SUBJECT_SEED in .env")

setup_logging(settings.log_level)
service = XrplService(settings)
credentials = CredentialService(settings, service)
issuer = service.wallet_from_seed(issuer_seed)
subject = service.wallet_from_seed(subject_seed)
cred_type = settings.credential_type

created = credentials.create_credential(issuer_seed, subject.classic_address, cred_type)
print("CredentialCreate:", created.engine_result, created.tx_hash)

accepted = credentials.accept_credential(subject_seed, issuer.classic_address, cred_type)
print("CredentialAccept:", accepted.engine_result, accepted.tx_hash)

domain = credentials.create_domain(
    issuer_seed,
    [AcceptedCredential(issuer=issuer.classic_address, credential_type=cred_type)],
)
print("PermissionedDomainSet:", domain.engine_result, domain.tx_hash)
if domain.domain_id:
    print(f"DOMAIN_ID={domain.domain_id}")
