import os
import shutil
import pathlib
import logging
import unicodedata
from xml.sax.saxutils import escape
from lxml import etree
from .records import DCValue
logger = logging.getLogger('rdb2dc')
DC_FILENAME = 'dublin_core.xml'
CONTENTS_FILENAME = 'contents'
XML_ENTITIES = {'"': '&quot;', "'": '&apos;'}


def is_blank(value):
    """Values that trim to nothing or to a literal "0" are never written."""
    if value is None:
        return True
    if isinstance(value, bytes):
        value = value.decode('utf-8', errors='ignore')
    value = str(value).strip()
    return value in ('', '0')


def clean_value(value):
    """Escape and encode a value for the text node of a dcvalue element."""
    if isinstance(value, bytes):
        working = value.decode('utf-8', errors='ignore')
    else:
        working = str(value)
    working = working.strip()
    # drop anything that can't be represented as UTF-8 (lone surrogates)
    working = working.encode('utf-8', errors='ignore').decode('utf-8')
    # XML documents can't have control characters
    working = ''.join(
        c for c in working if unicodedata.category(c) != 'Cc')
    return escape(working, XML_ENTITIES)


def escape_filename(filename):
    """Backslash-escape a filename for pasting into a shell."""
    for char in (' ', '(', ')'):
        filename = filename.replace(char, '\\' + char)
    return filename


def folder_name(pub_id, digits):
    """Left zero-pads a publication id to a fixed width. Raises ValueError
    when the id doesn't fit, as two publications could otherwise share a
    folder name."""
    name = str(pub_id).strip()
    if not name.isdigit():
        raise ValueError('Publication ids must be non-negative integers:', pub_id)
    if len(name) > digits:
        raise ValueError(
            f'Publication id {pub_id} is wider than {digits} digits')
    return name.zfill(digits)


class DublinCoreFile:
    def __init__(self, fpath):
        """An open dublin_core.xml file, written in the DSpace simple archive
        format. Use as a context manager: the header is written on entry,
        the footer on a clean exit and the file is closed regardless.
        """
        self.fpath = pathlib.Path(fpath)
        self.outfile = None
        self.count = 0

    def __enter__(self):
        self.outfile = self.fpath.open('w', encoding='utf-8', newline='\n')
        self.outfile.write('<?xml version="1.0" encoding="UTF-8"?>\n')
        self.outfile.write('<dublin_core>\n')
        return self

    def __exit__(self, exc_type, exc, tb):
        try:
            if exc_type is None:
                self.outfile.write('</dublin_core>\n')
        finally:
            self.outfile.close()
            self.outfile = None
        return False

    def write_dcvalue(self, element, qualifier, value):
        """Writes a dcvalue tag, formatted like this:
        <dcvalue element="foo" qualifier="bar">baz</dcvalue>
        <dcvalue element="foo">bar</dcvalue>
        Blank values, and values with nothing left once cleaned, are skipped.
        """
        if is_blank(value):
            return
        text = clean_value(value)
        if text == '':
            return
        tag = '\t<dcvalue element="' + escape(element.strip(), XML_ENTITIES) + '"'
        if qualifier is not None and qualifier.strip() != '':
            tag += ' qualifier="' + escape(qualifier.strip(), XML_ENTITIES) + '"'
        self.outfile.write(tag + '>' + text + '</dcvalue>\n')
        self.count += 1

    def write_fields(self, fields):
        for field in fields:
            self.write_dcvalue(*field)


class ItemBundle:
    def __init__(self, import_dir, pub_id, digits):
        """Class representing a single item in a DSpace batch import: a folder
        named for the publication, holding the metadata file, a contents
        manifest and the PDF itself.
        """
        self.pub_id = pub_id
        self.name = folder_name(pub_id, digits)
        self.path = pathlib.Path(import_dir) / self.name

    @property
    def dublin_core(self):
        return self.path / DC_FILENAME

    @property
    def contents(self):
        return self.path / CONTENTS_FILENAME

    def create(self):
        if not self.path.exists():
            logger.debug(f'Creating item folder {self.path}')
        self.path.mkdir(parents=True, exist_ok=True)

    def move_pdf(self, pdf_dir, filename, test_mode=False):
        """Move a collected PDF from the intake folder into this bundle. In
        test mode the PDF stays where it is so the export can be rerun.
        """
        source = pathlib.Path(pdf_dir) / filename
        if filename == '' or not source.is_file():
            return False
        logger.debug(
            f'Moving file {escape_filename(os.fspath(source))} '
            f'to {escape_filename(os.fspath(self.path))}')
        if not test_mode:
            shutil.move(os.fspath(source), os.fspath(self.path / filename))
        return True

    def write_contents(self, filename):
        """The batch import format requires a contents file listing which
        additional files belong to the item.
        """
        with self.contents.open('w', encoding='utf-8', newline='\n') as f:
            f.write(filename + '\tbundle:ORIGINAL\n')

    def write_dublin_core(self, fields):
        with DublinCoreFile(self.dublin_core) as dc:
            dc.write_fields(fields)
        logger.debug(f'Wrote {dc.count} dcvalues to {self.dublin_core}')
        return dc.count


def pdf_exists(pdf_dir, filename):
    return filename != '' and (pathlib.Path(pdf_dir) / filename).is_file()


def load_dublin_core(fpath):
    """Parses an existing dublin_core.xml back into DCValues."""
    root = etree.parse(os.fspath(fpath)).getroot()
    if root.tag != 'dublin_core':
        raise ValueError('Not a dublin_core document:', fpath)
    fields = []
    for elem in root.findall('dcvalue'):
        fields.append(DCValue(
            elem.get('element'), elem.get('qualifier', ''), elem.text or ''))
    return fields


def read_contents(fpath):
    """Returns the filenames listed in a contents manifest."""
    files = []
    with open(fpath, encoding='utf-8') as f:
        for line in f:
            line = line.rstrip('\n')
            if line:
                files.append(line.split('\t')[0])
    return files
