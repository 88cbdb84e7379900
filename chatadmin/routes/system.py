from fastapi import APIRouter, File, Form, Header, Request, UploadFile
from pydantic import BaseModel, Field
from ..services import search as search_service
from ..services.auth import require_admin, client_ip
from ..services.upload import save_upload

router = APIRouter()


class SearchData(BaseModel):
    keywords: str = ""


class SealUserData(BaseModel):
    username: str = ""


class SealIpData(BaseModel):
    ip: str


class SealUserOnlineIpData(BaseModel):
    user_id: str = Field(alias="userId")


@router.post("/search")
def search_api(data: SearchData):
    return search_service.search(data.keywords)


@router.post("/search/expression")
def search_expression_api(data: SearchData):
    return search_service.search_expression(data.keywords)


@router.get("/baidu_token")
def baidu_token_api(request: Request):
    return {"token": request.app.state.token_cache.get_token()}


@router.post("/seal/user")
def seal_user_api(data: SealUserData, request: Request, authorization: str | None = Header(None)):
    require_admin(authorization)
    return request.app.state.policy.seal_user(data.username)


@router.post("/seal/ip")
def seal_ip_api(data: SealIpData, request: Request, authorization: str | None = Header(None)):
    require_admin(authorization)
    return request.app.state.policy.seal_ip(data.ip, client_ip(request))


@router.post("/seal/user_online_ip")
def seal_user_online_ip_api(data: SealUserOnlineIpData, request: Request, authorization: str | None = Header(None)):
    require_admin(authorization)
    return request.app.state.policy.seal_user_online_ips(data.user_id, client_ip(request))


@router.get("/seal/list")
def seal_list_api(request: Request, authorization: str | None = Header(None)):
    require_admin(authorization)
    return request.app.state.policy.get_seal_list()


@router.delete("/seal/user/{username}")
def unseal_user_api(username: str, request: Request, authorization: str | None = Header(None)):
    require_admin(authorization)
    return request.app.state.policy.unseal_user(username)


@router.delete("/seal/ip/{ip}")
def unseal_ip_api(ip: str, request: Request, authorization: str | None = Header(None)):
    require_admin(authorization)
    return request.app.state.policy.unseal_ip(ip)


@router.post("/upload/file", tags=["upload"])
def upload_file_api(file: UploadFile = File(...), fileName: str | None = Form(None)):
    return save_upload(fileName or file.filename, file.file)
