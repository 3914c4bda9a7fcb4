"""Command-line entry point.

Order of work, each step finishing before the next starts:

    configure -> check programs -> resolve input -> list devices -> select
    -> match -> confirm -> unmount -> dd

Configuration errors (bad regex, bad block size, missing -i) are reported
before any device or network access.
"""

from __future__ import annotations

import argparse
import sys

from rich.console import Console
from rich.markup import escape

from ddsafe import __version__
from ddsafe.config import WriteConfig, load_settings
from ddsafe.domain import GateOutcome, TransferSource
from ddsafe.exceptions import ConstraintMismatchError, DdSafeError, UserDeclinedError
from ddsafe.logging import LoggerFactory, operation_context, setup_logging
from ddsafe.services import matcher
from ddsafe.services.gate import ConfirmationGate
from ddsafe.services.selector import select_target
from ddsafe.services.source import is_remote, resolve_source
from ddsafe.storage import devices, mount, transfer
from ddsafe.storage.commands import require_programs
from ddsafe.ui.console import Prompter, print_devices, print_match_summary, print_plan

EXIT_OK = 0
EXIT_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ddsafe",
        description=(
            "Write an image to a block device with dd, after checking the "
            "device's size and model and asking for confirmation."
        ),
        epilog=(
            "Examples:\n"
            "  ddsafe -l\n"
            "  ddsafe -i raspios.img.gz -s 14.9G -m 'Cruzer'\n"
            "  ddsafe -n -i ~/images/'*.img' -o /dev/sdb -s 29.7G\n"
            "  ddsafe -n -i backup:images/pi/'*.img.gz' -m SanDisk -r"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-i", dest="input", metavar="PATH",
                        help="input image: local file, directory with -n, or ALIAS:PATH in the object store")
    parser.add_argument("-n", dest="newest", action="store_true",
                        help="use the newest file in the -i directory (optionally DIR/GLOB)")
    parser.add_argument("-o", dest="output", metavar="DEVICE",
                        help="output device, e.g. /dev/sdb (prompted for when omitted)")
    parser.add_argument("-B", dest="mc_path", metavar="PATH",
                        help="path to the mc object store client")
    parser.add_argument("-s", dest="size", metavar="SIZE",
                        help="expected device size exactly as lsblk shows it, e.g. 14.9G")
    parser.add_argument("-m", dest="model", metavar="REGEX",
                        help="regular expression the device model must match")
    parser.add_argument("-r", dest="use_sudo", action="store_true",
                        help="run umount and dd through sudo")
    parser.add_argument("-t", dest="block_size", metavar="BS",
                        help="dd block size (default from settings, 4M)")
    parser.add_argument("-l", dest="list_only", action="store_true",
                        help="list block devices and exit")
    parser.add_argument("-D", dest="dry_run", action="store_true",
                        help="show what would be done without unmounting or writing")
    parser.add_argument("-f", dest="force", action="store_true",
                        help="allow writing to a device that fails -s/-m after an extra confirmation")
    parser.add_argument("--debug", action="store_true", help="enable verbose debug output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def required_programs(config: WriteConfig) -> list[str]:
    programs = ["lsblk"]
    if config.list_only:
        return programs
    programs.append("dd")
    if config.use_sudo:
        programs.append("sudo")
    if is_remote(config.input_path):
        programs.append(config.mc_path)
    return programs


def list_devices_command(console: Console, config: WriteConfig) -> int:
    found = devices.list_devices()
    if not found:
        console.print("No block devices found.")
        return EXIT_FAILURE
    report = None
    if config.constraint.any_enabled:
        report = matcher.evaluate(found, "", config.constraint)
    print_devices(console, found, report)
    return EXIT_OK


def write_image(config: WriteConfig, prompter: Prompter) -> int:
    console = prompter.console
    log = LoggerFactory.for_system()

    source = resolve_source(config)
    if source.compressed:
        require_programs(["gunzip"])

    found = devices.list_devices()
    target = select_target(found, config.output, config.constraint, prompter)

    report = matcher.evaluate(found, target, config.constraint)
    print_devices(console, found, report)
    print_match_summary(console, report)

    outcome = ConfirmationGate(prompter, force=config.force).run(
        report, source.location
    )
    if outcome is GateOutcome.ABORT:
        raise UserDeclinedError()

    commands = transfer.build_pipeline(
        source,
        target,
        config.block_size,
        use_sudo=config.use_sudo,
        mc_path=config.mc_path,
    )
    if config.dry_run:
        mount.unmount_device(target, use_sudo=config.use_sudo, dry_run=True)
        print_plan(console, source, target, commands, dry_run=True)
        log.info("Dry run finished; nothing was written")
        return EXIT_OK

    return _perform_write(console, config, source, target, commands)


def _perform_write(
    console: Console,
    config: WriteConfig,
    source: TransferSource,
    target: str,
    commands: list[list[str]],
) -> int:
    with operation_context("write", source=source.location, target=target) as log:
        unmounted = mount.unmount_device(target, use_sudo=config.use_sudo)
        if unmounted:
            log.info(f"Unmounted {len(unmounted)} mount point(s) on {target}")
        print_plan(console, source, target, commands)
        transfer.run_pipeline(commands, log=log)
    console.print(f"[bold green]Wrote {escape(source.location)} to {escape(target)}.[/bold green]")
    return EXIT_OK


def main(argv=None, prompter: Prompter | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    prompter = prompter or Prompter(Console())
    console = prompter.console

    setup_logging(debug=args.debug)
    log = LoggerFactory.for_system()
    try:
        config = WriteConfig.from_args(args, load_settings())
        require_programs(required_programs(config))
        if config.list_only:
            return list_devices_command(console, config)
        return write_image(config, prompter)
    except UserDeclinedError:
        console.print("[yellow]Aborted. Nothing was written.[/yellow]")
        log.info("Aborted by user")
        return EXIT_FAILURE
    except ConstraintMismatchError as error:
        # The gate has already printed the diagnostic
        console.print(
            "[bold red]Refusing to write.[/bold red] Fix -o/-s/-m, or pass -f to override."
        )
        log.error(str(error))
        return EXIT_FAILURE
    except DdSafeError as error:
        console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
        log.error(str(error))
        return EXIT_FAILURE
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        log.warning("Interrupted by user")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
