from typing import Any, List
from fastapi import APIRouter, Depends, Response, status

from studygroup.api import deps
from studygroup.schemas.group import Group, GroupCreate, GroupUpdate
from studygroup.services.group_service import GroupService

router = APIRouter()


@router.get("", response_model=List[Group])
async def read_groups(
    groups: GroupService = Depends(deps.get_group_service),
) -> Any:
    return await groups.list_groups()


@router.post("", response_model=Group, status_code=status.HTTP_201_CREATED)
async def create_group(
    data: GroupCreate,
    groups: GroupService = Depends(deps.get_group_service),
) -> Any:
    return await groups.create_group(data)


@router.get("/{group_id}", response_model=Group)
async def read_group(
    group_id: str,
    groups: GroupService = Depends(deps.get_group_service),
) -> Any:
    return await groups.get_group(group_id)


@router.put("/{group_id}", response_model=Group)
async def update_group(
    group_id: str,
    snapshot: GroupUpdate,
    groups: GroupService = Depends(deps.get_group_service),
    current_username: str = Depends(deps.get_current_username),
) -> Any:
    """
    Replace the whole group document. Send `version` to get a 409 instead of
    silently overwriting someone else's change.
    """
    return await groups.update_group(group_id, snapshot, caller=current_username)


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(
    group_id: str,
    groups: GroupService = Depends(deps.get_group_service),
    current_username: str = Depends(deps.get_current_username),
) -> Response:
    await groups.delete_group(group_id, caller=current_username)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{group_id}/join", response_model=Group)
async def join_group(
    group_id: str,
    groups: GroupService = Depends(deps.get_group_service),
    current_username: str = Depends(deps.get_current_username),
) -> Any:
    return await groups.join_group(group_id, current_username)


@router.post(
    "/{group_id}/leave",
    response_model=Group,
    responses={204: {"description": "Last member left; the group was deleted"}},
)
async def leave_group(
    group_id: str,
    groups: GroupService = Depends(deps.get_group_service),
    current_username: str = Depends(deps.get_current_username),
) -> Any:
    group = await groups.leave_group(group_id, current_username)
    if group is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return group
