# Power Whip Nomenclature Engine
# Pattern recognition and PreSal normalization for power whip order workbooks
__version__ = "1.2.0"
# v1.2.0 — Natural-language orders: spec_parser.py expands "N power whips total"
# descriptions into evenly distributed pattern rows; receptacle_patterns.py
# handles "!N" quantity suffixes and enriches pattern rows with receptacle ratings.
