"""V1 API router aggregating all sub-routers."""

from fastapi import APIRouter, Depends

from atreo.api.deps import rate_limit
from atreo.api.v1.admins.router import router as admins_router
from atreo.api.v1.assets.router import router as assets_router
from atreo.api.v1.auth.router import router as auth_router
from atreo.api.v1.credentials.router import router as credentials_router
from atreo.api.v1.customers.router import router as customers_router
from atreo.api.v1.dashboard.router import router as dashboard_router
from atreo.api.v1.employees.router import router as employees_router
from atreo.api.v1.files.router import router as files_router
from atreo.api.v1.invoices.router import router as invoices_router
from atreo.api.v1.logs.router import router as logs_router
from atreo.api.v1.messages.router import router as messages_router
from atreo.api.v1.organizations.router import router as organizations_router
from atreo.api.v1.otp.router import router as otp_router
from atreo.api.v1.payments.router import router as payments_router
from atreo.api.v1.permissions.router import router as permissions_router
from atreo.api.v1.submissions.router import router as submissions_router
from atreo.api.v1.system.router import router as system_router
from atreo.api.v1.tools.router import router as tools_router
from atreo.api.v1.users.router import router as users_router

v1_router = APIRouter(dependencies=[Depends(rate_limit("global"))])
v1_router.include_router(system_router, prefix="/system", tags=["system"])
v1_router.include_router(auth_router, prefix="/auth", tags=["auth"])
v1_router.include_router(otp_router, prefix="/otp", tags=["otp"])
v1_router.include_router(users_router, prefix="/users", tags=["users"])
v1_router.include_router(admins_router, prefix="/admins", tags=["admins"])
v1_router.include_router(employees_router, prefix="/employees", tags=["employees"])
v1_router.include_router(permissions_router, prefix="/permissions", tags=["permissions"])
v1_router.include_router(organizations_router, prefix="/organizations", tags=["organizations"])
v1_router.include_router(tools_router, prefix="/tools", tags=["tools"])
v1_router.include_router(credentials_router, prefix="/credentials", tags=["credentials"])
v1_router.include_router(invoices_router, prefix="/invoices", tags=["invoices"])
v1_router.include_router(payments_router, prefix="/payments", tags=["payments"])
v1_router.include_router(assets_router, prefix="/assets", tags=["assets"])
v1_router.include_router(submissions_router, prefix="/submissions", tags=["submissions"])
v1_router.include_router(messages_router, prefix="/messages", tags=["messages"])
v1_router.include_router(customers_router, prefix="/customers", tags=["customers"])
v1_router.include_router(dashboard_router, prefix="/dashboard", tags=["dashboard"])
v1_router.include_router(logs_router, prefix="/logs", tags=["logs"])
v1_router.include_router(files_router, prefix="/files", tags=["files"])
