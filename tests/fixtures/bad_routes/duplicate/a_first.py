routes = {"/same": {"get": "first"}}


async def first():
    return {"from": "a"}
