"""HTTP surface — routers, request-scoped dependencies, error envelope.

Routes parse, call one service handler, and shape the response.
"""
