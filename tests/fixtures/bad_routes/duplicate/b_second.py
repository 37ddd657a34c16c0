routes = {"/same": {"get": "second"}}


async def second():
    return {"from": "b"}
