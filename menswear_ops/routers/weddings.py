from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from menswear_ops.dependencies import get_functions
from menswear_ops.schemas import FunctionDataOut, WeddingActionRequest
from menswear_ops.services.automation_service import wedding_request
from menswear_ops.services.function_client import FunctionClient, RemoteFunctionError

router = APIRouter(prefix='/weddings', tags=['weddings'])


@router.post('/actions', response_model=FunctionDataOut)
def wedding_action(payload: WeddingActionRequest, client: FunctionClient = Depends(get_functions)):
    try:
        return {'data': wedding_request(client, action=payload.action, params=payload.params)}
    except RemoteFunctionError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
