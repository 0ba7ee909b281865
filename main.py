"""
GXT 命令行工具

    python main.py info american.gxt
    python main.py export american.gxt american.txt
    python main.py import american.txt american.gxt --variant hashed
    python main.py resave american.gxt out.gxt
"""
import argparse
import logging
import sys

from gxt_errors import GxtError
from gxt_logging import setup_logging
from gxt_model import GxtVersion
from gxt_parser import load_gxt
from gxt_settings import SETTINGS_PATH, load_settings
from gxt_text import load_txt, save_txt
from gxt_writer import save_gxt

logger = logging.getLogger(__name__)

VARIANTS = {
    "legacy": GxtVersion.STRING_KEYED,
    "hashed": GxtVersion.HASH_KEYED,
}


def cmd_info(args, settings):
    gxt = load_gxt(args.gxt, settings.text_encoding, settings.keep_key_names)
    print(f"格式: {gxt.version.name}")
    if gxt.version is GxtVersion.HASH_KEYED:
        print(f"版本号: 0x{gxt.version_tag:08X}")
    print(f"表数量: {len(gxt)}")
    for table in gxt:
        print(f"  {table.name:<8} {len(table):>6} 个条目")
    print(f"条目总数: {gxt.total_entry_count()}")
    return 0


def cmd_export(args, settings):
    gxt = load_gxt(args.gxt, settings.text_encoding, settings.keep_key_names)
    save_txt(gxt, args.txt)
    return 0


def cmd_import(args, settings):
    version = VARIANTS[args.variant]
    encoding = settings.text_encoding if version is GxtVersion.HASH_KEYED else None
    # TXT 里的键名要写回 III/VC，必须保留
    gxt = load_txt(args.txt, version, keep_key_names=True, encoding=encoding)
    if version is GxtVersion.HASH_KEYED:
        gxt.version_tag = settings.hashed_version
    save_gxt(gxt, args.gxt)
    return 0


def cmd_resave(args, settings):
    gxt = load_gxt(args.gxt, settings.text_encoding, settings.keep_key_names)
    save_gxt(gxt, args.out)
    return 0


def build_parser():
    ap = argparse.ArgumentParser(description="GTA III / VC / SA / IV 的 GXT 文本表工具")
    ap.add_argument("--settings", default=SETTINGS_PATH, help="设置文件路径 (JSON)")
    ap.add_argument("-v", "--verbose", action="store_true", help="输出 DEBUG 日志")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p = sub.add_parser("info", help="显示 GXT 的格式和表信息")
    p.add_argument("gxt")
    p.set_defaults(func=cmd_info)

    p = sub.add_parser("export", help="gxt → txt")
    p.add_argument("gxt")
    p.add_argument("txt")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("import", help="txt → gxt")
    p.add_argument("txt")
    p.add_argument("gxt")
    p.add_argument("--variant", choices=sorted(VARIANTS), default="hashed",
                   help="legacy: III/VC 字符串键; hashed: SA/IV 哈希键")
    p.set_defaults(func=cmd_import)

    p = sub.add_parser("resave", help="读取后重新写出 GXT（规范化排序）")
    p.add_argument("gxt")
    p.add_argument("out")
    p.set_defaults(func=cmd_resave)
    return ap


def main(argv=None):
    args = build_parser().parse_args(argv)
    settings = load_settings(args.settings)
    setup_logging("DEBUG" if args.verbose else settings.log_level,
                  settings.console_colors, settings.log_file)
    try:
        return args.func(args, settings)
    except (GxtError, OSError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
