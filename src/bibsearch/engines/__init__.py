"""Search engine layer — Connectors for bibliographic search backends.

Built-in engines:
  - ebsco_host: EBSCOhost Integration Toolkit (boolean field queries, MARC-ish XML)
  - worldcat_sru_dc: WorldCat Search API over SRU (CQL queries, Dublin Core XML)
  - journal_tocs: JournalTOCS latest-issue RSS feeds, looked up by ISSN

Implement ``SearchEngine`` to connect another backend.
"""
