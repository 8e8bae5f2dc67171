"""Record kinds read from the publications database and the functions that
map each row onto Dublin Core fields.
"""
from collections import namedtuple
from enum import Enum

DCValue = namedtuple('DCValue', ['element', 'qualifier', 'value'])

PUBLICATIONS_SQL = (
    "select pub_id, title, abstract, year, pub_file from pubs_main")


class RecordKind(Enum):
    """The repeating entities attached to a publication, in the order they
    are written to the metadata file."""
    AUTHOR = (
        "select fname, lname "
        "from pubs_author inner join pubs_main_auth_lnk lnk "
        "on lnk.f_author_id = pubs_author.author_id "
        "where f_pub_id = :pub_id")
    JOURNAL = (
        "select journal, volume, spage, epage, extent "
        "from pubs_journal_new "
        "where pub_id = :pub_id")
    SUBJECT = (
        "select name "
        "from pubs_category inner join pubs_main_cat_lnk lnk "
        "on lnk.f_category_id = pubs_category.category_id "
        "where f_pub_id = :pub_id")
    KEYWORD = (
        "select name "
        "from pubs_tag inner join pubs_main_tag_lnk lnk "
        "on lnk.f_tag_id = pubs_tag.tag_id "
        "where f_pub_id = :pub_id")

    @property
    def sql(self):
        return self.value


def _get(row, column):
    value = row.get(column)
    if value is None:
        return ''
    return value


def format_pub(pub):
    """Publication specific metadata from a pubs_main row."""
    return [
        DCValue('title', '', _get(pub, 'title')),
        DCValue('description', 'abstract', _get(pub, 'abstract')),
        DCValue('date', 'created', _get(pub, 'year'))]


def format_author(author):
    fullname = str(_get(author, 'lname')).strip()
    fname = str(_get(author, 'fname')).strip()
    if fname != '':
        fullname = fullname + ', ' + fname
    return [DCValue('creator', '', fullname)]


def format_journal(journal):
    return [
        DCValue('relation', 'ispartof', _get(journal, 'journal')),
        DCValue('citation', 'volume', _get(journal, 'volume')),
        DCValue('citation', 'spage', _get(journal, 'spage')),
        DCValue('citation', 'epage', _get(journal, 'epage')),
        DCValue('format', 'extent', _get(journal, 'extent'))]


def format_subject(subject):
    return [DCValue('subject', '', _get(subject, 'name'))]


def format_keyword(keyword):
    return [DCValue('subject', 'keyword', _get(keyword, 'name'))]
