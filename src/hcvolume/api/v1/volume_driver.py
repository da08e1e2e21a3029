"""Docker volume plugin endpoints.

Docker POSTs JSON to ``/Plugin.Activate`` and ``/VolumeDriver.*`` on the
plugin socket. PluginError is rendered as ``{"Err": ...}`` by the
application exception handler.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from hcvolume.api.dependencies import get_driver
from hcvolume.api.v1.schemas import (
    ActivateResponse,
    CapabilitiesResponse,
    Capability,
    CreateRequest,
    ErrResponse,
    GetResponse,
    ListResponse,
    MountpointResponse,
    MountRequest,
    NameRequest,
    VolumeDetail,
    VolumeEntry,
)
from hcvolume.driver import VolumeDriver

router = APIRouter(tags=["volume-driver"])

Driver = Annotated[VolumeDriver, Depends(get_driver)]


@router.post("/Plugin.Activate", response_model=ActivateResponse)
async def activate() -> ActivateResponse:
    """Handshake: announce the VolumeDriver protocol."""
    return ActivateResponse()


@router.post("/VolumeDriver.Create", response_model=ErrResponse)
async def create_volume(request: CreateRequest, driver: Driver) -> ErrResponse:
    await driver.create(request.name, request.opts)
    return ErrResponse()


@router.post("/VolumeDriver.Get", response_model=GetResponse)
async def get_volume(request: NameRequest, driver: Driver) -> GetResponse:
    info = await driver.get(request.name)
    return GetResponse(
        volume=VolumeDetail(
            name=info.name,
            mountpoint=info.mountpoint,
            created_at=info.created_at,
            status=info.status,
        )
    )


@router.post("/VolumeDriver.List", response_model=ListResponse)
async def list_volumes(driver: Driver) -> ListResponse:
    infos = await driver.list()
    return ListResponse(
        volumes=[VolumeEntry(name=info.name, mountpoint=info.mountpoint) for info in infos]
    )


@router.post("/VolumeDriver.Remove", response_model=ErrResponse)
async def remove_volume(request: NameRequest, driver: Driver) -> ErrResponse:
    await driver.remove(request.name)
    return ErrResponse()


@router.post("/VolumeDriver.Path", response_model=MountpointResponse)
async def volume_path(request: NameRequest, driver: Driver) -> MountpointResponse:
    return MountpointResponse(mountpoint=await driver.path(request.name))


@router.post("/VolumeDriver.Mount", response_model=MountpointResponse)
async def mount_volume(request: MountRequest, driver: Driver) -> MountpointResponse:
    return MountpointResponse(mountpoint=await driver.mount(request.name, request.id))


@router.post("/VolumeDriver.Unmount", response_model=ErrResponse)
async def unmount_volume(request: MountRequest, driver: Driver) -> ErrResponse:
    await driver.unmount(request.name, request.id)
    return ErrResponse()


@router.post("/VolumeDriver.Capabilities", response_model=CapabilitiesResponse)
async def capabilities(driver: Driver) -> CapabilitiesResponse:
    return CapabilitiesResponse(capabilities=Capability(scope=driver.capabilities()))
