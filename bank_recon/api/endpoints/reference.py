"""
Reference data the engine consumes: clients, recorded ledger entries and
the organization's own identity. Each PUT replaces the session's copy.
"""
from typing import List

from fastapi import APIRouter, Request

from bank_recon.api.schemas import ClientIn, CompanyIn, ExistingTransactionIn
from bank_recon.api.state import get_session_state
from bank_recon.common.logging_config import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.put("/clients")
def put_clients(request: Request, clients: List[ClientIn]):
    state = get_session_state(request)
    state.clients = [c.to_model() for c in clients]
    logger.info("Clients loaded.", count=len(state.clients))
    return {"count": len(state.clients)}


@router.put("/transactions")
def put_transactions(request: Request, transactions: List[ExistingTransactionIn]):
    state = get_session_state(request)
    state.transactions = [t.to_model() for t in transactions]
    logger.info("Ledger entries loaded.", count=len(state.transactions))
    return {"count": len(state.transactions)}


@router.put("/company")
def put_company(request: Request, company: CompanyIn):
    state = get_session_state(request)
    state.company = company.to_model()
    logger.info("Company identity set.", has_bin=bool(company.bin), has_iban=bool(company.iban))
    return {"bin": state.company.bin, "iban": state.company.iban}
