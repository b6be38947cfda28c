"""Fusion Portal Modules - one package per portal area.

Routers are imported by `fusion_portal.main` directly from each
`<module>.router` so services stay importable without FastAPI wiring.
"""
