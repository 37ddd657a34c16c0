# Underscore-prefixed modules are helpers, never scanned for routes.

routes = {"/never": {"get": "missing_on_purpose"}}
