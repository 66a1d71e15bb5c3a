"""GDMT core: enumerations, exceptions, blocker taxonomy and schemas."""
