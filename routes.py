# routes.py
from fastapi import FastAPI
from controller.approval_controller import approval_router
from controller.verification_controller import verification_router


def register_routes(app: FastAPI) -> None:
    """Register & Access control controllers here."""
    app.include_router(verification_router)
    app.include_router(approval_router)
