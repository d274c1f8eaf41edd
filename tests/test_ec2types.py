import dataclasses

import pytest

from ec2debug.ec2types import DebugAdapterInfo, Ec2Mode, FlashLockType, SfrReg


def test_sfr_reg_holds_page_and_addr():
    reg = SfrReg(page=0x0F, addr=0x80)
    assert (reg.page, reg.addr) == (0x0F, 0x80)


@pytest.mark.parametrize("page,addr", [(0x100, 0x80), (-1, 0x80), (0, 0x7F), (0, 0x100)])
def test_sfr_reg_rejects_out_of_range(page, addr):
    with pytest.raises(ValueError):
        SfrReg(page=page, addr=addr)


def test_sfr_reg_is_immutable():
    reg = SfrReg(0, 0xFF)
    with pytest.raises(dataclasses.FrozenInstanceError):
        reg.page = 1
    assert (reg.page, reg.addr) == (0, 0xFF)


@pytest.mark.parametrize("value,name", [(0, "AUTO"), (1, "JTAG"), (2, "C2")])
def test_ec2_mode_values(value, name):
    assert Ec2Mode(value).name == name


@pytest.mark.parametrize(
    "value,name", [(0, "SINGLE"), (1, "SINGLE_ALT"), (2, "RW"), (3, "RW_ALT")]
)
def test_flash_lock_type_values(value, name):
    assert FlashLockType(value).name == name


def _info(**overrides):
    fields = dict(
        usb_vendor_id=0x10C4,
        usb_product_id=0x8044,
        usb_out_endpoint=0x02,
        usb_in_endpoint=0x81,
        has_bootloader=True,
        name="EC3",
        min_ver=0x0A,
        max_ver=0x0C,
    )
    fields.update(overrides)
    return DebugAdapterInfo(**fields)


def test_adapter_info_keeps_fields():
    info = _info()
    assert info.name == "EC3"
    assert info.has_bootloader is True


def test_adapter_info_rejects_long_name():
    with pytest.raises(ValueError):
        _info(name="x" * 32)


def test_adapter_info_rejects_bad_id():
    with pytest.raises(ValueError):
        _info(usb_vendor_id=0x10000)