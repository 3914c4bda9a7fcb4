"""Tests for terminal prompts and device table rendering."""

import re
from io import StringIO

import pytest
from rich.console import Console

from ddsafe.domain import DeviceRecord, MatchConstraint, TransferSource
from ddsafe.exceptions import UserDeclinedError
from ddsafe.services import matcher
from ddsafe.ui import console as ui


class TestConfirm:
    @pytest.mark.parametrize("answer", ["y", "Y", "yes", "YES", " yes "])
    def test_yes_tokens(self, make_prompter, answer):
        prompter, _, _ = make_prompter(answer)
        assert prompter.confirm("Continue?") is True

    @pytest.mark.parametrize("answer", ["n", "N", "no", "No", ""])
    def test_no_tokens_and_empty(self, make_prompter, answer):
        prompter, _, _ = make_prompter(answer)
        assert prompter.confirm("Continue?") is False

    def test_end_of_input_is_no(self, make_prompter):
        prompter, _, _ = make_prompter()
        assert prompter.confirm("Continue?") is False

    def test_reprompts_until_clear_answer(self, make_prompter):
        prompter, scripted, _ = make_prompter("sure", "ok", "y")
        assert prompter.confirm("Continue?") is True
        assert len(scripted.prompts) == 3

    def test_prompt_shows_default(self, make_prompter):
        prompter, scripted, _ = make_prompter("n")
        prompter.confirm("Continue?")
        assert scripted.prompts[0].startswith("Continue?")
        assert "y/N" in scripted.prompts[0]


class TestChooseIndex:
    def test_returns_zero_based(self, make_prompter):
        prompter, _, _ = make_prompter("3")
        assert prompter.choose_index(3) == 2

    @pytest.mark.parametrize("bad", ["0", "4", "two", "-1", "²", "1.5", ""])
    def test_reprompts_on_invalid_input(self, make_prompter, bad):
        prompter, scripted, output = make_prompter(bad, "1")
        assert prompter.choose_index(3) == 0
        assert len(scripted.prompts) == 2
        assert "Invalid selection" in output.getvalue()

    def test_end_of_input(self, make_prompter):
        prompter, _, _ = make_prompter()
        with pytest.raises(UserDeclinedError):
            prompter.choose_index(2)


def render(table) -> str:
    buffer = StringIO()
    Console(file=buffer, force_terminal=False, width=120).print(table)
    return buffer.getvalue()


class TestDeviceTable:
    def test_lists_every_device(self, usb_devices):
        text = render(ui.build_device_table(usb_devices))
        for device in usb_devices:
            assert device.name in text
            assert device.size in text

    def test_target_row_marked(self, usb_devices):
        report = matcher.evaluate(usb_devices, "/dev/sdb", MatchConstraint(size="14.9G"))
        table = ui.build_device_table(usb_devices, report)
        assert list(table.columns[0].cells) == ["1", "2", "*3"]

    def test_matching_cells_highlighted(self, usb_devices):
        report = matcher.evaluate(
            usb_devices, "/dev/sda", MatchConstraint(model=re.compile("Cruzer"))
        )
        table = ui.build_device_table(usb_devices, report)
        model_cells = list(table.columns[3].cells)
        size_cells = list(table.columns[2].cells)
        assert model_cells[0] == "Samsung SSD 970"
        assert model_cells[1].startswith(f"[{ui.MATCH_STYLE}]")
        assert model_cells[2].startswith(f"[{ui.MATCH_STYLE}]")
        # size check disabled: never highlighted
        assert all(not cell.startswith("[") for cell in size_cells)

    def test_markup_in_model_escaped(self):
        devices = [DeviceRecord(name="/dev/sda", size="1G", model="[bold]x")]
        text = render(ui.build_device_table(devices))
        assert "[bold]x" in text


class TestMessages:
    def make_console(self):
        buffer = StringIO()
        return Console(file=buffer, force_terminal=False, width=120), buffer

    def test_mismatch_lists_alternatives(self, two_devices):
        console, buffer = self.make_console()
        report = matcher.evaluate(two_devices, "/dev/a", MatchConstraint(size="16G"))
        ui.print_mismatch(console, report)
        text = buffer.getvalue()
        assert "/dev/a does not match expected size 16G" in text
        assert "/dev/b 16G Beta" in text

    def test_mismatch_without_alternatives(self, two_devices):
        console, buffer = self.make_console()
        report = matcher.evaluate(two_devices, "/dev/a", MatchConstraint(size="32G"))
        ui.print_mismatch(console, report)
        assert "No other device matches either." in buffer.getvalue()

    def test_summary_reports_other_devices(self, usb_devices):
        console, buffer = self.make_console()
        report = matcher.evaluate(
            usb_devices, "/dev/sda", MatchConstraint(size="14.9G", model=re.compile("Cruzer"))
        )
        ui.print_match_summary(console, report)
        text = buffer.getvalue()
        assert "Other devices this size: /dev/sdb" in text
        assert "Other devices with this model: /dev/sdb" in text

    def test_summary_silent_without_constraints(self, two_devices):
        console, buffer = self.make_console()
        ui.print_match_summary(console, matcher.evaluate(two_devices, "/dev/a", MatchConstraint()))
        assert buffer.getvalue() == ""

    def test_plan_dry_run_heading(self):
        console, buffer = self.make_console()
        source = TransferSource.for_location("pi.img")
        ui.print_plan(console, source, "/dev/sdb", [["dd", "if=pi.img", "of=/dev/sdb"]], dry_run=True)
        text = buffer.getvalue()
        assert "DRY RUN" in text
        assert "dd if=pi.img of=/dev/sdb" in text
