# Routes exercising the pipeline: params, errors, views and flash.

from fastapi import HTTPException, Request
from fastapi.responses import RedirectResponse

from portico import flash, get_flashed_messages, get_params, render

routes = {
    "/echo": {"all": "echo"},
    "/boom": {"get": "boom"},
    "/teapot": {"get": "teapot"},
    "/page": {"get": "page"},
    "/flash/set": {"post": "set_flash"},
    "/flash/get": {"get": "read_flash"},
    "/big": {"get": "big"},
    "/state": {"get": "state"},
}


async def echo(request: Request):
    return {"all": get_params(request), "body": request.state.body}


async def boom():
    raise RuntimeError("handler exploded")


async def teapot():
    raise HTTPException(status_code=418, detail="I'm a teapot")


async def page(request: Request):
    return await render(request, "index", {"name": "portico"})


async def set_flash(request: Request):
    flash(request, "info", "Saved")
    return RedirectResponse("/flash/get", status_code=303)


async def read_flash(request: Request):
    return {"info": get_flashed_messages(request, "info")}


async def big():
    return {"data": "x" * 5000}


async def state(request: Request):
    return {
        "name": request.state.config.name,
        "hooks": getattr(request.state, "hooks", []),
    }
