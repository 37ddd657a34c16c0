routes = {"/x": {"get": "handler_that_does_not_exist"}}
