"""auth/ -- Credential store, login audit log, and the AuthService that drives them.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/. api/ wires configuration into auth/,
not the other way around.
"""
