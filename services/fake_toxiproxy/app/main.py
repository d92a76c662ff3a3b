import os
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Response
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from services.fake_toxiproxy.app.core.store import ProxyEntry, ProxyStore
from toxiclient.api.versions import PATCH_UPDATES_SINCE, parse_version

HTTP_HOST = os.getenv("FAKE_TOXIPROXY_HOST", "127.0.0.1")
HTTP_PORT = int(os.getenv("FAKE_TOXIPROXY_PORT", "8474"))
VERSION = os.getenv("FAKE_TOXIPROXY_VERSION", "2.12.0")


class ProxyIn(BaseModel):
    name: str
    listen: str
    upstream: str
    enabled: bool = True

class ProxyUpdate(BaseModel):
    listen: Optional[str] = None
    upstream: Optional[str] = None
    enabled: Optional[bool] = None

class ToxicIn(BaseModel):
    name: str = ""
    type: str
    stream: str = "downstream"
    toxicity: float = Field(1.0, ge=0.0, le=1.0)
    attributes: Dict[str, Any] = Field(default_factory=dict)

class ToxicUpdate(BaseModel):
    toxicity: Optional[float] = Field(None, ge=0.0, le=1.0)
    attributes: Optional[Dict[str, Any]] = None


def create_app(version: str = VERSION, json_version: bool = True) -> FastAPI:
    """
    In-memory stand-in for a Toxiproxy server of the given version.

    Servers before 2.6.0 only accept POST for updates, so the PATCH routes
    exist only from that version on (older versions answer 405).
    Set ``json_version=False`` to answer /version in plain text like old servers.
    """
    app = FastAPI(title="Fake Toxiproxy", version=version)
    store = ProxyStore()
    app.state.store = store

    update_methods = ["POST"]
    if parse_version(version) >= parse_version(PATCH_UPDATES_SINCE):
        update_methods.append("PATCH")

    def _lookup(fn, *args):
        try:
            return fn(*args)
        except KeyError as e:
            raise HTTPException(status_code=404, detail=str(e))

    @app.get("/version")
    def get_version():
        if not json_version:
            return PlainTextResponse(version)
        return {"version": version}

    @app.get("/proxies")
    def list_proxies():
        return {name: entry.to_json() for name, entry in store.proxies.items()}

    @app.post("/proxies", status_code=201)
    def create_proxy(p: ProxyIn):
        try:
            entry = store.create(ProxyEntry(**p.model_dump()))
        except ValueError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return entry.to_json()

    @app.get("/proxies/{name}")
    def get_proxy(name: str):
        return _lookup(store.get, name).to_json()

    @app.api_route("/proxies/{name}", methods=update_methods)
    def update_proxy(name: str, p: ProxyUpdate):
        entry = _lookup(store.get, name)
        for key, value in p.model_dump(exclude_none=True).items():
            setattr(entry, key, value)
        return entry.to_json()

    @app.delete("/proxies/{name}", status_code=204)
    def delete_proxy(name: str):
        _lookup(store.delete, name)
        return Response(status_code=204)

    @app.get("/proxies/{name}/toxics")
    def list_toxics(name: str):
        return list(_lookup(store.get, name).toxics.values())

    @app.post("/proxies/{name}/toxics")
    def create_toxic(name: str, t: ToxicIn):
        toxic = t.model_dump()
        if not toxic["name"]:
            toxic["name"] = f"{t.type}_{t.stream}"
        try:
            return _lookup(store.add_toxic, name, toxic)
        except ValueError as e:
            raise HTTPException(status_code=409, detail=str(e))

    @app.get("/proxies/{name}/toxics/{toxic}")
    def get_toxic(name: str, toxic: str):
        return _lookup(store.get_toxic, name, toxic)

    @app.api_route("/proxies/{name}/toxics/{toxic}", methods=update_methods)
    def update_toxic(name: str, toxic: str, t: ToxicUpdate):
        current = _lookup(store.get_toxic, name, toxic)
        if t.toxicity is not None:
            current["toxicity"] = t.toxicity
        if t.attributes is not None:
            current["attributes"].update(t.attributes)
        return current

    @app.delete("/proxies/{name}/toxics/{toxic}", status_code=204)
    def delete_toxic(name: str, toxic: str):
        _lookup(store.delete_toxic, name, toxic)
        return Response(status_code=204)

    @app.post("/reset", status_code=204)
    def reset():
        store.reset()
        return Response(status_code=204)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=HTTP_HOST, port=HTTP_PORT, reload=False)
