from dataclasses import dataclass

from flask import current_app

from app.services.bank_accounts import BankAccountService
from app.services.collaborators import LoggingInventoryGateway
from app.services.ledger import BalanceLedger
from app.services.order_service import OrderRepository, OrderService
from app.services.payment_rail import build_payment_rail
from app.services.payouts import PayoutProcessor
from app.services.proofs import ProofWorkflow
from app.services.settlement import SettlementCoordinator

EXTENSION_KEY = "settlement"


@dataclass
class Services:
    ledger: BalanceLedger
    orders: OrderRepository
    settlement: SettlementCoordinator
    order_service: OrderService
    proofs: ProofWorkflow
    payouts: PayoutProcessor
    bank_accounts: BankAccountService


def build_services(config, *, payment_rail=None, inventory=None) -> Services:
    ledger = BalanceLedger()
    orders = OrderRepository()
    settlement = SettlementCoordinator(orders, ledger)
    return Services(
        ledger=ledger,
        orders=orders,
        settlement=settlement,
        order_service=OrderService(
            orders,
            settlement,
            inventory or LoggingInventoryGateway(),
            refund_on_cancel=bool(config.get("REFUND_ESCROW_ON_CANCEL")),
        ),
        proofs=ProofWorkflow(orders, window_minutes=config.get("PROOF_REUPLOAD_WINDOW_MIN", 15)),
        payouts=PayoutProcessor(ledger, payment_rail or build_payment_rail(config)),
        bank_accounts=BankAccountService(ledger),
    )


def init_services(app, **overrides):
    app.extensions[EXTENSION_KEY] = build_services(app.config, **overrides)


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]
