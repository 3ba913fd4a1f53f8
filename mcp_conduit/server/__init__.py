"""HTTP surface: Starlette app, endpoints, middleware and the JSON-RPC core."""
