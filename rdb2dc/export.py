"""Exports a scholarly works publication database to Dublin Core item
folders for DSpace batch import. Each publication with a PDF in the intake
folder becomes import/<padded pub_id>/ holding dublin_core.xml, contents
and the PDF.
"""
import sys
import time
import pathlib
import logging
import argparse
from datetime import datetime
from dataclasses import replace
from lxml import etree
from . import records
from .records import RecordKind, PUBLICATIONS_SQL
from .dclib import (
    ItemBundle, pdf_exists, load_dublin_core, read_contents,
    DC_FILENAME, CONTENTS_FILENAME)
from .database import Database, DatabaseError
from .config import (
    ConfigError, ExportConfig, DEFAULT_PROFILE, load_config, parse_digits,
    write_config)
FORMAT = '%(asctime)-15s [%(levelname)s] %(message)s'
logger = logging.getLogger('rdb2dc')


class Exporter:
    def __init__(self, config, db=None):
        """Drives a single export run. db defaults to a Database built from
        the config; anything with connect, disconnect and get_recordset will
        do.
        """
        self.config = config
        if config.verbose:
            logger.setLevel(logging.DEBUG)
        if db is None:
            db = Database(
                config.database_url, username=config.username,
                password=config.password)
        self.db = db
        self.digits = config.folder_digits
        self.stats = {
            'total': 0,
            'exported': 0,
            'skipped': 0,
            'failed': 0,
            'start_time': None,
            'end_time': None}

    def resolve_digits(self, pubs):
        """Checks every pub_id fits the folder width before anything is
        written, or sizes the width to the largest id in auto mode."""
        widest = max((len(str(pub['pub_id'])) for pub in pubs), default=1)
        if self.config.folder_digits is None:
            self.digits = widest
            logger.debug(f'Using {self.digits} digit folder names')
        elif widest > self.config.folder_digits:
            raise ValueError(
                f'Largest pub_id has {widest} digits, folder names are '
                f'limited to {self.config.folder_digits}')
        return self.digits

    def collect_fields(self, pub):
        """All the dcvalues for a publication, in output order."""
        pub_id = pub['pub_id']
        fields = records.format_pub(pub)
        for author in self.db.get_recordset(RecordKind.AUTHOR.sql, pub_id):
            fields.extend(records.format_author(author))
        for journal in self.db.get_recordset(RecordKind.JOURNAL.sql, pub_id):
            fields.extend(records.format_journal(journal))
        for subject in self.db.get_recordset(RecordKind.SUBJECT.sql, pub_id):
            fields.extend(records.format_subject(subject))
        for keyword in self.db.get_recordset(RecordKind.KEYWORD.sql, pub_id):
            fields.extend(records.format_keyword(keyword))
        return fields

    def export_pub(self, pub):
        """Writes one publication's item folder. Returns the bundle, or None
        if the publication was skipped for a missing PDF."""
        pub_id = pub['pub_id']
        filename = (pub.get('pub_file') or '').strip()
        logger.debug(f'{pub_id} {pub.get("title")}')
        if not pdf_exists(self.config.pdf_dir, filename):
            logger.warning(
                f'Missing PDF, skipping. pub_id={pub_id}, file={filename}')
            return None
        fields = self.collect_fields(pub)
        bundle = ItemBundle(self.config.import_dir, pub_id, self.digits)
        bundle.create()
        bundle.move_pdf(
            self.config.pdf_dir, filename, test_mode=self.config.test_mode)
        bundle.write_contents(filename)
        bundle.write_dublin_core(fields)
        return bundle

    def export_all(self):
        """Connects, exports every publication and disconnects. Returns a
        dict of run statistics."""
        self.stats['start_time'] = datetime.now().isoformat()
        start_time = time.time()
        self.db.connect()
        try:
            pubs = self.db.get_recordset(PUBLICATIONS_SQL)
            self.stats['total'] = len(pubs)
            logger.info(f'Exporting {len(pubs)} publications')
            self.resolve_digits(pubs)
            for pub in pubs:
                try:
                    bundle = self.export_pub(pub)
                except (OSError, ValueError) as e:
                    logger.error(
                        f'Failed to export pub_id={pub["pub_id"]}: {e}')
                    self.stats['failed'] += 1
                    continue
                if bundle is None:
                    self.stats['skipped'] += 1
                else:
                    self.stats['exported'] += 1
        finally:
            self.db.disconnect()
        self.stats['end_time'] = datetime.now().isoformat()
        logger.info(
            f'Exported {self.stats["exported"]}, skipped '
            f'{self.stats["skipped"]}, failed {self.stats["failed"]} in '
            f'{time.time() - start_time:.2f} seconds')
        return self.stats


def verify(import_dir):
    """Checks existing item folders for a parseable dublin_core.xml, a
    contents file and the files it lists. Returns a list of problems."""
    problems = []
    import_dir = pathlib.Path(import_dir)
    if not import_dir.is_dir():
        return [f'{import_dir} is not a directory']
    for item in sorted(p for p in import_dir.iterdir() if p.is_dir()):
        dc = item / DC_FILENAME
        if not dc.is_file():
            problems.append(f'{item.name}: missing {DC_FILENAME}')
        else:
            try:
                fields = load_dublin_core(dc)
            except (etree.XMLSyntaxError, ValueError) as e:
                problems.append(f'{item.name}: unreadable {DC_FILENAME}: {e}')
            else:
                logger.debug(f'{item.name}: {len(fields)} dcvalues')
                if not any(f.element == 'title' for f in fields):
                    problems.append(f'{item.name}: no title')
        contents = item / CONTENTS_FILENAME
        if not contents.is_file():
            problems.append(f'{item.name}: missing {CONTENTS_FILENAME}')
            continue
        for fname in read_contents(contents):
            if not (item / fname).is_file():
                problems.append(f'{item.name}: missing bitstream {fname}')
    for problem in problems:
        logger.warning(problem)
    return problems


def build_parser():
    parser = argparse.ArgumentParser(
        description='Export a publications database to Dublin Core item '
        'folders for DSpace batch import')
    sub = parser.add_subparsers(dest='command', required=True)

    exp = sub.add_parser('export', help='export all publications')
    exp.add_argument(
        '--config', type=str, help='path to a config.json file')
    exp.add_argument(
        '--profile', type=str, default=DEFAULT_PROFILE,
        help='profile within the config file')
    exp.add_argument(
        '--database', type=str,
        help='SQLAlchemy database URL, overrides the config file')
    exp.add_argument(
        '--digits', type=str,
        help='zero padding width for item folders, or "auto"')
    exp.add_argument(
        '--import-dir', type=str, help='output directory for item folders')
    exp.add_argument(
        '--pdf-dir', type=str, help='intake directory holding the PDFs')
    exp.add_argument(
        '--move', action='store_true',
        help='move PDFs into item folders (test mode leaves them in place)')
    exp.add_argument(
        '--verbose', action='store_true', help='log each publication')

    ver = sub.add_parser('verify', help='check existing item folders')
    ver.add_argument(
        'import_dir', nargs='?', default='import',
        help='directory of item folders')
    ver.add_argument('--verbose', action='store_true')

    conf = sub.add_parser('configure', help='write a config profile')
    conf.add_argument('database', type=str, help='SQLAlchemy database URL')
    conf.add_argument('--username', type=str)
    conf.add_argument('--password', type=str)
    conf.add_argument('--digits', type=str, default='4')
    conf.add_argument(
        '--move', action='store_true', help='turn test mode off')
    conf.add_argument('--profile', type=str, default=DEFAULT_PROFILE)
    conf.add_argument('--config', type=str, help='path to write to')
    return parser


def export_config(args):
    """Config for the export command: the config file, with anything given
    on the command line on top. A --database on its own is enough to run
    without a config file."""
    try:
        config = load_config(args.config, profile=args.profile)
    except ConfigError:
        if args.database is None or args.config is not None:
            raise
        config = ExportConfig(database_url=args.database)
    config = config.override(
        database_url=args.database,
        import_dir=args.import_dir,
        pdf_dir=args.pdf_dir)
    if args.move:
        config = replace(config, test_mode=False)
    if args.verbose:
        config = replace(config, verbose=True)
    if args.digits is not None:
        config = replace(config, folder_digits=parse_digits(args.digits))
    return config


def main(argv=None):
    logging.basicConfig(format=FORMAT)
    args = build_parser().parse_args(argv)
    logger.setLevel(
        logging.DEBUG if getattr(args, 'verbose', False) else logging.INFO)
    if args.command == 'verify':
        return 1 if verify(args.import_dir) else 0
    if args.command == 'configure':
        try:
            path = write_config(
                args.database, username=args.username,
                password=args.password, test_mode=not args.move,
                folder_digits=parse_digits(args.digits),
                profile=args.profile, path=args.config)
        except ConfigError as e:
            logger.error(e)
            return 1
        logger.info(f'Wrote profile {args.profile} to {path}')
        return 0
    try:
        config = export_config(args)
    except ConfigError as e:
        logger.error(e)
        return 1
    if config.test_mode:
        logger.info('Test mode: PDFs will not be moved')
    try:
        Exporter(config).export_all()
    except (DatabaseError, ValueError) as e:
        logger.error(f'Export aborted: {e}')
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
