import pytest

from treediagram.core import parse


ORG_CHART = '''
node ceo "Chief Executive"
node cto "Technology"
node cfo "Finance"
node eng "Engineering"
node ops "Operations"
node qa ""

edge ceo -> cto
edge ceo -> cfo
edge cto -> eng
edge cto -> ops
edge cto -> qa
'''


@pytest.fixture
def org_source():
    return ORG_CHART


@pytest.fixture
def org_model():
    return parse(ORG_CHART)
