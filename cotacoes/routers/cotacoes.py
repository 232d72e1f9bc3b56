from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from cotacoes.domain.cotacao import CotacaoIn
from cotacoes.services.cotacao_service import CotacaoService

router = APIRouter(tags=["cotacoes"])


def _get_service(request: Request) -> CotacaoService:
    svc = getattr(getattr(request.app, "state", None), "cotacao_service", None)
    if not svc:
        raise RuntimeError("CotacaoService nao configurado")
    return svc


def _identity(request: Request):
    return getattr(request.state, "user", None)


@router.head("")
def cotacoes_probe():
    return Response(status_code=200)


@router.get("")
def list_cotacoes(request: Request):
    return _get_service(request).list_all()


@router.get("/{cotacao_id}")
def get_cotacao(cotacao_id: str, request: Request):
    return _get_service(request).get(cotacao_id)


@router.post("", status_code=201)
def create_cotacao(payload: CotacaoIn, request: Request):
    record = _get_service(request).create(payload.provided_fields(), _identity(request))
    return JSONResponse(record, status_code=201)


@router.put("/{cotacao_id}")
def update_cotacao(cotacao_id: str, payload: CotacaoIn, request: Request):
    return _get_service(request).update(cotacao_id, payload.provided_fields(), _identity(request))


@router.delete("/{cotacao_id}", status_code=204)
def delete_cotacao(cotacao_id: str, request: Request):
    _get_service(request).delete(cotacao_id)
    return Response(status_code=204)
