#!/usr/bin/env python3
"""
Generate a Mermaid ER diagram of the CMMS tables from their sampled columns.

Usage:
    python generate_diagram.py [--output database-diagram.md]
"""
import argparse
from pathlib import Path

from dbtools.catalog import KNOWN_TABLES
from dbtools.cli import add_common_args, connect
from dbtools.diagram import build_mermaid, render_markdown
from dbtools.probe import ProbeStatus, SchemaProbe


def main():
    parser = argparse.ArgumentParser(description='Generate a database ER diagram')
    add_common_args(parser)
    parser.add_argument('--output', default='database-diagram.md', help='Markdown file to write')
    args = parser.parse_args()

    client, _ = connect(args)
    probe = SchemaProbe(client)

    print("🎨 Generating database diagram...\n")
    tables = {}
    samples = {}
    for table in KNOWN_TABLES:
        result = probe.probe_table(table)
        if result.status == ProbeStatus.EXISTS:
            tables[table] = result.columns
            rows = client.table(table).select('*').limit(1).execute().data or []
            if rows:
                samples[table] = rows[0]
            print(f"✅ Found table: {table} with {len(result.columns)} columns")
        elif result.status == ProbeStatus.EMPTY:
            tables[table] = []
            print(f"⚠️  {table} is empty, columns unknown")

    output = Path(args.output)
    output.write_text(render_markdown(build_mermaid(tables, samples)), encoding='utf-8')
    print(f"\n📁 Diagram saved to: {output}")


if __name__ == '__main__':
    main()
