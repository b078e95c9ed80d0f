from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from lucas_agent import latency_probe

app = FastAPI()


def _run(kind: str) -> JSONResponse:
    try:
        res = latency_probe.run(kind)
    except latency_probe.ProbeError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return JSONResponse({"ok": True, "kind": kind, "meta": res})


@app.post("/probe/sweep")
def probe_sweep():
    return _run("sweep")


@app.post("/probe/burst")
def probe_burst():
    return _run("burst")
