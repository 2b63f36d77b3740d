from fastapi import FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse
from pathlib import Path
import json
import math
import os

app = FastAPI(title="Mock Banco do Brasil Extratos API", version="1.0.0")
# Support both local development and Docker
DATA_DIR = Path("/bb_stub") if os.path.exists("/bb_stub") else Path(__file__).resolve().parents[1] / "bb_stub"

@app.get("/health")
def health(): return {"status": "ok"}

@app.get("/extratos/v1/conta-corrente/agencia/{agencia}/conta/{conta}")
def get_statement(
    agencia: str,
    conta: str,
    numeroPagina: int = 1,
    quantidadeRegistros: int = 50,
    authorization: str | None = Header(None),
    gw_dev_app_key: str | None = Header(None),
    x_application_key: str | None = Header(None),
):
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="missing bearer token")
    if not gw_dev_app_key or gw_dev_app_key != x_application_key:
        raise HTTPException(status_code=401, detail="application key mismatch")

    file = DATA_DIR / f"statement_{agencia}.json"
    if not file.exists():
        raise HTTPException(status_code=404, detail="account not found")

    items = json.loads(file.read_text())["listaLancamento"]
    size = max(quantidadeRegistros, 1)
    start = (numeroPagina - 1) * size
    return JSONResponse(content={
        "numeroPaginaAtual": numeroPagina,
        "quantidadeRegistroPaginaAtual": len(items[start:start + size]),
        "numeroPaginaAnterior": max(numeroPagina - 1, 0),
        "numeroPaginaProximo": numeroPagina + 1 if start + size < len(items) else 0,
        "quantidadeTotalPagina": max(math.ceil(len(items) / size), 1),
        "quantidadeTotalRegistro": len(items),
        "listaLancamento": items[start:start + size],
    })
