from octoswitch.domain.devices.protocols import DeviceActuator, DeviceDirectory, DeviceState

__all__ = ["DeviceActuator", "DeviceDirectory", "DeviceState"]
