"""
FastAPI router for Firebase Authentication users.

All routes delegate to UserManagementService. No business logic here.
Token and user faults are mapped by the centralized error handlers.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from gateway.application.backend.manage_users import UserManagementService
from gateway.interfaces.backend.dependencies import get_user_service
from gateway.interfaces.backend.schemas import (
    ApiResponse,
    CreateUserRequest,
    CustomClaimsRequest,
    CustomTokenData,
    DecodedTokenSchema,
    ErrorResponse,
    GenerateTokenRequest,
    MessageData,
    UpdateUserRequest,
    UserListData,
    UserSchema,
    VerifyTokenRequest,
)
from gateway.shared.security.rate_limiting import enforce_rate_limit

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    dependencies=[Depends(enforce_rate_limit)],
)

USER_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.post(
    "/verify-token",
    response_model=ApiResponse[DecodedTokenSchema],
    responses={401: {"model": ErrorResponse}},
    summary="Verify an ID token",
)
def verify_token(
    request: VerifyTokenRequest,
    service: UserManagementService = Depends(get_user_service),
) -> ApiResponse[DecodedTokenSchema]:
    decoded = service.verify_token(request.id_token)
    return ApiResponse(data=DecodedTokenSchema.model_validate(decoded))


@router.post(
    "/create-user",
    response_model=ApiResponse[UserSchema],
    status_code=status.HTTP_201_CREATED,
    responses={**USER_ERRORS, 409: {"model": ErrorResponse}},
    summary="Create a user",
)
def create_user(
    request: CreateUserRequest,
    service: UserManagementService = Depends(get_user_service),
) -> ApiResponse[UserSchema]:
    user = service.create_user(**request.model_dump())
    return ApiResponse(data=UserSchema.model_validate(user))


@router.get(
    "/users",
    response_model=ApiResponse[UserListData],
    summary="List users",
    description="List users one page at a time; pass `pageToken` for the next page.",
)
def list_users(
    service: UserManagementService = Depends(get_user_service),
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
    page_token: Annotated[str | None, Query(alias="pageToken")] = None,
) -> ApiResponse[UserListData]:
    page = service.list_users(limit, page_token)
    return ApiResponse(
        data=UserListData(
            users=[UserSchema.model_validate(u) for u in page.users],
            count=len(page.users),
            next_page_token=page.next_page_token,
        )
    )


@router.get(
    "/users/email/{email}",
    response_model=ApiResponse[UserSchema],
    responses=USER_ERRORS,
    summary="Get a user by email",
)
def get_user_by_email(
    email: str,
    service: UserManagementService = Depends(get_user_service),
) -> ApiResponse[UserSchema]:
    return ApiResponse(data=UserSchema.model_validate(service.get_user_by_email(email)))


@router.get(
    "/users/{uid}",
    response_model=ApiResponse[UserSchema],
    responses=USER_ERRORS,
    summary="Get a user",
)
def get_user(
    uid: str,
    service: UserManagementService = Depends(get_user_service),
) -> ApiResponse[UserSchema]:
    return ApiResponse(data=UserSchema.model_validate(service.get_user(uid)))


@router.put(
    "/users/{uid}",
    response_model=ApiResponse[UserSchema],
    responses=USER_ERRORS,
    summary="Update a user",
    description="Update the given fields of a user; omitted fields are unchanged.",
)
def update_user(
    uid: str,
    request: UpdateUserRequest,
    service: UserManagementService = Depends(get_user_service),
) -> ApiResponse[UserSchema]:
    user = service.update_user(uid, **request.model_dump(exclude_none=True))
    return ApiResponse(data=UserSchema.model_validate(user))


@router.delete(
    "/users/{uid}",
    response_model=ApiResponse[MessageData],
    responses=USER_ERRORS,
    summary="Delete a user",
)
def delete_user(
    uid: str,
    service: UserManagementService = Depends(get_user_service),
) -> ApiResponse[MessageData]:
    service.delete_user(uid)
    return ApiResponse(data=MessageData(message="User deleted successfully", id=uid))


@router.post(
    "/users/{uid}/custom-claims",
    response_model=ApiResponse[UserSchema],
    responses=USER_ERRORS,
    summary="Set custom claims",
)
def set_custom_claims(
    uid: str,
    request: CustomClaimsRequest,
    service: UserManagementService = Depends(get_user_service),
) -> ApiResponse[UserSchema]:
    user = service.set_custom_claims(uid, request.claims)
    return ApiResponse(data=UserSchema.model_validate(user))


@router.post(
    "/generate-token",
    response_model=ApiResponse[CustomTokenData],
    responses=USER_ERRORS,
    summary="Generate a custom token",
)
def generate_token(
    request: GenerateTokenRequest,
    service: UserManagementService = Depends(get_user_service),
) -> ApiResponse[CustomTokenData]:
    token = service.generate_custom_token(request.uid, request.claims)
    return ApiResponse(data=CustomTokenData(custom_token=token, uid=request.uid))
