routes = {"/x": {"get": "answer"}}

answer = 42
