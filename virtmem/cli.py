import argparse
import logging
import sys

from .addresses import read_addresses
from .backing_store import FileBackingStore
from .config import FRAME_COUNT, PAGE_COUNT, PAGE_SIZE, TLB_CAPACITY, MemoryConfig, Policy
from .errors import BackingStoreReadError, StructuralConfigError
from .report import ConsoleSink, compare_policies, format_comparison, plot_comparison
from .virtualsim import TranslationPipeline

log = logging.getLogger(__name__)


def policy_arg(value: str) -> Policy:
    try:
        return Policy.parse(value)
    except StructuralConfigError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="virtmem",
        description="Translate virtual addresses through a simulated TLB, page table and physical memory",
    )
    parser.add_argument("backing_store", help="binary file holding every page of the address space")
    parser.add_argument("addresses", help="text file with one logical address per line")
    parser.add_argument("-p", "--policy", type=policy_arg, default=Policy.FIFO,
                        help="frame replacement policy: 0/fifo or 1/lru (default: fifo)")
    parser.add_argument("--tlb-size", type=int, default=TLB_CAPACITY,
                        help=f"TLB entries (default: {TLB_CAPACITY})")
    parser.add_argument("--pages", type=int, default=PAGE_COUNT,
                        help=f"logical pages (default: {PAGE_COUNT})")
    parser.add_argument("--frames", type=int, default=FRAME_COUNT,
                        help=f"physical frames (default: {FRAME_COUNT})")
    parser.add_argument("--page-size", type=int, default=PAGE_SIZE,
                        help=f"bytes per page, a power of two (default: {PAGE_SIZE})")
    parser.add_argument("--compare", action="store_true",
                        help="run every policy and print a comparison table instead of a trace")
    parser.add_argument("--plot", metavar="PATH",
                        help="with --compare, save a bar chart of the results to PATH")
    parser.add_argument("-v", "--verbose", action="store_true", help="log page faults and evictions")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    config = MemoryConfig(
        tlb_capacity=args.tlb_size,
        page_count=args.pages,
        frame_count=args.frames,
        page_size=args.page_size,
        policy=args.policy,
    )
    try:
        config.validate()
    except StructuralConfigError as e:
        parser.error(str(e))
    if args.plot and not args.compare:
        parser.error("--plot requires --compare")

    try:
        with FileBackingStore(args.backing_store, config.page_size, config.page_count) as store:
            if args.compare:
                results = compare_policies(config, store, args.addresses)
                print(format_comparison(results))
                if args.plot:
                    try:
                        plot_comparison(results, args.plot)
                    except OSError as e:
                        print(f"Error saving chart to {args.plot}: {e}", file=sys.stderr)
                        return 1
                    print(f"Saved comparison chart to {args.plot}")
                return 0

            pipeline = TranslationPipeline(config, store)
            pipeline.run(read_addresses(args.addresses), ConsoleSink())
            log.debug("Final state: %s", pipeline.snapshot())
    except BackingStoreReadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
