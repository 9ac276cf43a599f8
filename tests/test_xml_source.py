from __future__ import annotations

from pathlib import Path

import pytest

from datanorm_converter.errors import SourceFormatError
from datanorm_converter.xml_source import read_xml_catalog

BMECAT_DOCUMENT = """<?xml version="1.0" encoding="UTF-8"?>
<BMECAT version="1.2" xmlns="http://www.bmecat.org/bmecat/1.2/bmecat_new_catalog">
  <HEADER>
    <CATALOG>
      <LANGUAGE>deu</LANGUAGE>
      <CATALOG_ID>CAT-7</CATALOG_ID>
      <CATALOG_VERSION>2.1</CATALOG_VERSION>
    </CATALOG>
    <SUPPLIER>
      <SUPPLIER_ID type="supplier_specific">S-42</SUPPLIER_ID>
      <SUPPLIER_NAME>Heiztechnik GmbH</SUPPLIER_NAME>
    </SUPPLIER>
  </HEADER>
  <T_NEW_CATALOG>
    <CLASSIFICATION_SYSTEM>
      <CLASSIFICATION_GROUP>
        <CLASSIFICATION_GROUP_ID>G1</CLASSIFICATION_GROUP_ID>
        <CLASSIFICATION_GROUP_NAME>Ventile</CLASSIFICATION_GROUP_NAME>
      </CLASSIFICATION_GROUP>
    </CLASSIFICATION_SYSTEM>
    <ARTICLE>
      <SUPPLIER_AID>10001</SUPPLIER_AID>
      <ARTICLE_DETAILS>
        <DESCRIPTION_SHORT>Heizkörperventil DN15</DESCRIPTION_SHORT>
        <DESCRIPTION_LONG>Thermostatisches Ventil</DESCRIPTION_LONG>
      </ARTICLE_DETAILS>
      <ARTICLE_FEATURES>
        <FEATURE><FNAME>Farbe</FNAME><FVALUE>weiss</FVALUE></FEATURE>
        <FEATURE><FNAME>Nennweite</FNAME><FVALUE>DN15</FVALUE></FEATURE>
      </ARTICLE_FEATURES>
      <ARTICLE_ORDER_DETAILS>
        <ORDER_UNIT>C62</ORDER_UNIT>
      </ARTICLE_ORDER_DETAILS>
      <ARTICLE_PRICE_DETAILS>
        <ARTICLE_PRICE price_type="net_list">
          <PRICE_AMOUNT>24.95</PRICE_AMOUNT>
        </ARTICLE_PRICE>
        <ARTICLE_PRICE price_type="net_customer">
          <PRICE_AMOUNT>19.00</PRICE_AMOUNT>
        </ARTICLE_PRICE>
      </ARTICLE_PRICE_DETAILS>
      <MIME_INFO>
        <MIME><MIME_SOURCE>ventil.jpg</MIME_SOURCE></MIME>
        <MIME><MIME_SOURCE>ventil.pdf</MIME_SOURCE></MIME>
      </MIME_INFO>
    </ARTICLE>
    <ARTICLE>
      <SUPPLIER_AID>10002</SUPPLIER_AID>
      <ARTICLE_DETAILS>
        <DESCRIPTION_SHORT>Rohr</DESCRIPTION_SHORT>
      </ARTICLE_DETAILS>
    </ARTICLE>
    <ARTICLE_TO_CATGROUP_MAP>
      <ART_ID>10001</ART_ID>
      <CATALOG_GROUP_ID>G1</CATALOG_GROUP_ID>
    </ARTICLE_TO_CATGROUP_MAP>
  </T_NEW_CATALOG>
</BMECAT>
"""

CLASSIFICATION_DOCUMENT = """<?xml version="1.0" encoding="UTF-8"?>
<BMECAT>
  <CLASSIFICATION_SYSTEM>
    <CLASSIFICATION_GROUP>
      <CLASSIFICATION_GROUP_ID>G2</CLASSIFICATION_GROUP_ID>
      <CLASSIFICATION_GROUP_NAME>Rohre</CLASSIFICATION_GROUP_NAME>
      <CLASSIFICATION_GROUP_PARENT_ID>G0</CLASSIFICATION_GROUP_PARENT_ID>
    </CLASSIFICATION_GROUP>
  </CLASSIFICATION_SYSTEM>
</BMECAT>
"""


def _write(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


def test_read_xml_catalog_extracts_header_articles_and_groups(tmp_path: Path) -> None:
    catalog = read_xml_catalog(_write(tmp_path / "katalog.xml", BMECAT_DOCUMENT))

    assert catalog.supplier_name == "Heiztechnik GmbH"
    assert catalog.supplier_id == "S-42"
    assert catalog.catalog_id == "CAT-7"
    assert catalog.catalog_version == "2.1"
    assert [(group.group_id, group.name) for group in catalog.groups] == [("G1", "Ventile")]

    first, second = catalog.articles
    assert first.fields["SUPPLIER_AID"] == "10001"
    assert first.fields["DESCRIPTION_SHORT"] == "Heizkörperventil DN15"
    assert first.fields["DESCRIPTION_LONG"] == "Thermostatisches Ventil"
    assert first.fields["ORDER_UNIT"] == "C62"
    assert first.fields["PRICE_AMOUNT"] == "24.95"
    assert first.fields["CATALOG_GROUP_ID"] == "G1"
    assert first.fields["MIME_SOURCE_1"] == "ventil.jpg"
    assert first.fields["MIME_SOURCE_2"] == "ventil.pdf"
    assert first.features == (("Farbe", "weiss"), ("Nennweite", "DN15"))

    assert "PRICE_AMOUNT" not in second.fields
    assert "CATALOG_GROUP_ID" not in second.fields
    assert "SUPPLIER_AID" in catalog.tag_names
    assert "DESCRIPTION_SHORT" in catalog.tag_names


def test_read_xml_catalog_appends_classification_documents(tmp_path: Path) -> None:
    catalog = read_xml_catalog(
        _write(tmp_path / "katalog.xml", BMECAT_DOCUMENT),
        [_write(tmp_path / "classes.xml", CLASSIFICATION_DOCUMENT)],
    )

    assert [group.group_id for group in catalog.groups] == ["G1", "G2"]
    assert catalog.groups[1].parent_id == "G0"


def test_malformed_xml_reports_parser_diagnostics(tmp_path: Path) -> None:
    path = _write(tmp_path / "broken.xml", "<BMECAT><T_NEW_CATALOG></BMECAT>")

    with pytest.raises(SourceFormatError, match="malformed XML") as excinfo:
        read_xml_catalog(path)

    assert excinfo.value.diagnostics
    assert isinstance(excinfo.value, ValueError)


def test_non_bmecat_root_is_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path / "other.xml", "<CATALOG><ITEM/></CATALOG>")

    with pytest.raises(SourceFormatError, match="not a BMEcat document"):
        read_xml_catalog(path)


def test_lowercase_root_and_empty_catalog_are_accepted(tmp_path: Path) -> None:
    catalog = read_xml_catalog(_write(tmp_path / "leer.xml", "<bmecat><HEADER/></bmecat>"))

    assert catalog.articles == ()
    assert catalog.groups == ()
    assert catalog.supplier_name == ""
