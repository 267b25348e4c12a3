"""
Web target — Next.js (App Router) + Prisma + Tailwind.

Layer A: ``prisma/schema.prisma`` (one model per strand)
Layer B: ``src/app/api/<resource>/route.ts`` (CRUD handlers per strand)
Layer C: ``src/app/<view>/page.tsx`` (layout-specific page per view)

Plus the shared Prisma client, a home page linking every view, and
``helix.config.json`` marking the directory as a Helix project.
"""

from __future__ import annotations

import json

from helix import __version__
from helix.core.models.blueprint import Blueprint, FieldType, Strand
from helix.core.models.descriptors import HandlerSet, Layout, TableDescriptor, ViewDescriptor
from helix.core.models.template import GeneratedFile
from helix.core.services.generators.api import handlers_for
from helix.core.services.generators.schema import table_for
from helix.core.services.generators.ui import view_for
from helix.core.services.naming import camel_case
from helix.plugins.base import BlueprintPlugin

_PRISMA_TYPES: dict[FieldType, str] = {
    FieldType.TEXT: "String",
    FieldType.INTEGER: "Int",
    FieldType.DECIMAL: "Float",
    FieldType.BOOLEAN: "Boolean",
    FieldType.TIMESTAMP: "DateTime",
}

_TS_TYPES: dict[FieldType, str] = {
    FieldType.TEXT: "string",
    FieldType.INTEGER: "number",
    FieldType.DECIMAL: "number",
    FieldType.BOOLEAN: "boolean",
    FieldType.TIMESTAMP: "string",
}

# Converts a raw request value into the column's JS type
_TS_COERCE: dict[FieldType, str] = {
    FieldType.TEXT: "String({v})",
    FieldType.INTEGER: "parseInt(String({v}), 10)",
    FieldType.DECIMAL: "Number({v})",
    FieldType.BOOLEAN: "Boolean({v})",
    FieldType.TIMESTAMP: "new Date({v})",
}

_HEADER = "// Generated by Helix. Changes will be overwritten on regenerate.\n"

_PRISMA_CLIENT = """\
import { PrismaClient } from '@prisma/client';

const globalForPrisma = globalThis as unknown as { prisma?: PrismaClient };

export const prisma = globalForPrisma.prisma ?? new PrismaClient();

if (process.env.NODE_ENV !== 'production') globalForPrisma.prisma = prisma;
"""

_PRISMA_PREAMBLE = """\
// Generated by Helix
generator client {
  provider = "prisma-client-js"
}

datasource db {
  provider = "sqlite"
  url      = "file:./dev.db"
}
"""


# ── Layer A: Prisma schema ──────────────────────────────────────


def prisma_model(strand: Strand) -> str:
    table: TableDescriptor = table_for(strand)
    width = max([len(c.name) for c in table.columns] + [len("createdAt")])

    lines = [f"model {strand.name} {{"]
    lines.append(f"  {'id'.ljust(width)} String   @id @default(uuid())")
    for col in table.columns:
        lines.append(f"  {col.name.ljust(width)} {_PRISMA_TYPES[col.type]}")
    lines.append(f"  {'createdAt'.ljust(width)} DateTime @default(now()) @map(\"created_at\")")
    lines.append(f"  {'updatedAt'.ljust(width)} DateTime @updatedAt @map(\"updated_at\")")
    lines.append("")
    lines.append(f"  @@map(\"{table.table}\")")
    lines.append("}")
    return "\n".join(lines)


def prisma_schema(blueprint: Blueprint) -> str:
    """Complete ``schema.prisma`` text for a blueprint."""
    models = [prisma_model(s) for s in blueprint.strands]
    return _PRISMA_PREAMBLE + "".join(f"\n{m}\n" for m in models)


# ── Layer B: API routes ─────────────────────────────────────────


def _coerce_block(strand: Strand) -> str:
    lines = []
    for field in strand.fields:
        expr = _TS_COERCE[field.type].format(v=f"body.{field.name}")
        lines.append(f"  if (body.{field.name} !== undefined) data.{field.name} = {expr};")
    return "\n".join(lines)


def api_route(strand: Strand) -> str:
    handlers: HandlerSet = handlers_for(strand)
    model = camel_case(strand.name)
    coerce = _coerce_block(strand)

    return f"""{_HEADER}import {{ NextResponse }} from 'next/server';
import {{ prisma }} from '@/lib/prisma';

function pick(body: Record<string, unknown>) {{
  const data: Record<string, unknown> = {{}};
{coerce}
  return data;
}}

// {handlers.get('list').method} {handlers.path}
export async function GET() {{
  const items = await prisma.{model}.findMany({{ orderBy: {{ createdAt: 'desc' }} }});
  return NextResponse.json(items);
}}

// {handlers.get('create').method} {handlers.path}
export async function POST(request: Request) {{
  const body = await request.json();
  const item = await prisma.{model}.create({{ data: pick(body) as any }});
  return NextResponse.json(item, {{ status: 201 }});
}}

// {handlers.get('update').method} {handlers.path}
export async function PUT(request: Request) {{
  const body = await request.json();
  if (!body.id) return NextResponse.json({{ error: 'id is required' }}, {{ status: 400 }});
  const item = await prisma.{model}.update({{ where: {{ id: body.id }}, data: pick(body) as any }});
  return NextResponse.json(item);
}}

// {handlers.get('delete').method} {handlers.path}
export async function DELETE(request: Request) {{
  const id = new URL(request.url).searchParams.get('id');
  if (!id) return NextResponse.json({{ error: 'id is required' }}, {{ status: 400 }});
  await prisma.{model}.delete({{ where: {{ id }} }});
  return new NextResponse(null, {{ status: 204 }});
}}
"""


# ── Layer C: UI pages ───────────────────────────────────────────


def _interface(strand: Strand) -> str:
    fields = "; ".join(f"{f.name}: {_TS_TYPES[f.type]}" for f in strand.fields)
    sep = "; " if fields else ""
    return f"interface {strand.name} {{ id: string; {fields}{sep}createdAt: string; }}"


def _layout_body(desc: ViewDescriptor) -> str:
    """JSX rendering ``items`` for the descriptor's layout."""
    slots = desc.slots
    if desc.layout == Layout.GALLERY:
        image, caption = slots.get("image", ""), slots.get("caption", "id")
        return f"""<div className="grid grid-cols-2 md:grid-cols-4 gap-4">
          {{items.map((item) => (
            <figure key={{item.id}} className="glass rounded-xl overflow-hidden">
              <img src={{String(item.{image} ?? '')}} alt="" className="w-full h-48 object-cover" />
              <figcaption className="p-3 text-white">{{String(item.{caption} ?? '')}}</figcaption>
            </figure>
          ))}}
        </div>"""
    if desc.layout == Layout.BOARD:
        group, title = slots.get("group_by", ""), slots.get("title", "id")
        return f"""<div className="flex gap-4 overflow-x-auto">
          {{Array.from(new Set(items.map((i) => String(i.{group})))).map((column) => (
            <section key={{column}} className="glass rounded-xl p-4 min-w-64">
              <h2 className="text-sm uppercase text-indigo-300 mb-3">{{column}}</h2>
              {{items.filter((i) => String(i.{group}) === column).map((item) => (
                <div key={{item.id}} className="bg-white/5 rounded-lg p-3 mb-2 text-white">{{String(item.{title} ?? '')}}</div>
              ))}}
            </section>
          ))}}
        </div>"""
    if desc.layout == Layout.FEED:
        title, body = slots.get("title", ""), slots.get("body", "")
        return f"""<div className="max-w-2xl mx-auto space-y-4">
          {{items.map((item) => (
            <article key={{item.id}} className="glass rounded-xl p-6">
              <h2 className="text-xl font-semibold text-white">{{String(item.{title} ?? '')}}</h2>
              <p className="text-gray-300 mt-2">{{String(item.{body} ?? '')}}</p>
            </article>
          ))}}
        </div>"""

    cells = "\n".join(
        f'              <div className="text-gray-300"><span className="text-gray-500 text-xs">{name}</span> {{String(item.{name} ?? \'\')}}</div>'
        for name in desc.fields
    )
    return f"""<div className="grid grid-cols-1 md:grid-cols-3 gap-4">
          {{items.map((item) => (
            <div key={{item.id}} className="glass rounded-xl p-4 space-y-1">
{cells}
            </div>
          ))}}
        </div>"""


def view_page(desc: ViewDescriptor, strand: Strand | None, resource: str | None) -> str:
    if strand is None or resource is None:
        return f"""{_HEADER}export default function {desc.view}Page() {{
  return (
    <main className="min-h-screen p-8" data-theme="{desc.theme}">
      <h1 className="text-4xl font-bold text-white">{desc.view}</h1>
    </main>
  );
}}
"""

    return f"""{_HEADER}'use client';
import {{ useEffect, useState }} from 'react';

{_interface(strand)}

export default function {desc.view}Page() {{
  const [items, setItems] = useState<{strand.name}[]>([]);
  const [loading, setLoading] = useState(true);

  useEffect(() => {{
    fetch('/api/{resource}')
      .then((res) => res.json())
      .then((data) => setItems(data))
      .finally(() => setLoading(false));
  }}, []);

  return (
    <main className="min-h-screen p-8" data-theme="{desc.theme}" data-layout="{desc.layout.value}">
      <h1 className="text-4xl font-bold text-white mb-8">{desc.view}</h1>
      {{loading ? (
        <div className="text-white animate-pulse">Loading...</div>
      ) : items.length === 0 ? (
        <div className="glass rounded-lg p-6 text-center text-gray-400">No {strand.name.lower()} records yet</div>
      ) : (
        {_layout_body(desc)}
      )}}
    </main>
  );
}}
"""


def home_page(title: str, views: list[ViewDescriptor]) -> str:
    links = "\n".join(
        f'          <a href="{v.route}" className="glass rounded-xl p-6 text-white hover:bg-white/5">{v.view}</a>'
        for v in views
    )
    return f"""{_HEADER}export default function Home() {{
  return (
    <main className="min-h-screen p-8">
      <div className="max-w-6xl mx-auto">
        <span className="text-sm text-indigo-400 font-mono">Helix</span>
        <h1 className="text-4xl font-bold text-white mt-1 mb-8">{title}</h1>
        <nav className="grid grid-cols-1 md:grid-cols-3 gap-4">
{links}
        </nav>
      </div>
    </main>
  );
}}
"""


def project_config(project_name: str, blueprint: Blueprint) -> str:
    return json.dumps(
        {
            "name": project_name,
            "target": "web",
            "helixVersion": __version__,
            "strands": [s.name for s in blueprint.strands],
            "views": [v.name for v in blueprint.views],
        },
        indent=2,
    ) + "\n"


class WebPlugin(BlueprintPlugin):
    name = "helix-gen-nextjs"
    target = "web"
    version = "1.0.0"
    description = "Next.js + Prisma + Tailwind web app"

    def dependencies(self) -> list[str]:
        return ["@prisma/client", "prisma"]

    def scaffold_command(self, project_name: str) -> list[str] | None:
        return [
            "npx",
            "create-next-app@latest",
            project_name,
            "--typescript",
            "--tailwind",
            "--eslint",
            "--app",
            "--src-dir",
            "--import-alias",
            "@/*",
            "--use-npm",
        ]

    def lower(
        self,
        blueprint: Blueprint,
        context: str | None,
        options: dict[str, str],
    ) -> list[GeneratedFile]:
        project_name = options.get("project_name") or "helix-app"
        files = [
            GeneratedFile(
                path="prisma/schema.prisma",
                content=prisma_schema(blueprint),
                overwrite=True,
                reason=f"{len(blueprint.strands)} Prisma model(s)",
            ),
            GeneratedFile(
                path="src/lib/prisma.ts",
                content=_PRISMA_CLIENT,
                reason="Shared Prisma client",
            ),
        ]

        for strand in blueprint.strands:
            handlers = handlers_for(strand)
            files.append(
                GeneratedFile(
                    path=f"src/app/api/{handlers.resource}/route.ts",
                    content=api_route(strand),
                    overwrite=True,
                    reason=f"CRUD handlers for {strand.name}",
                )
            )

        descriptors: list[ViewDescriptor] = []
        for view in blueprint.views:
            strand = blueprint.strand_for(view)
            desc = view_for(view, strand)
            descriptors.append(desc)
            resource = handlers_for(strand).resource if strand else None
            files.append(
                GeneratedFile(
                    path=f"src/app{desc.route}/page.tsx",
                    content=view_page(desc, strand, resource),
                    overwrite=True,
                    reason=f"{desc.layout.value} page for {view.name}",
                )
            )

        files.append(
            GeneratedFile(
                path="src/app/page.tsx",
                content=home_page(options.get("title") or project_name, descriptors),
                overwrite=True,
                reason="Home page linking every view",
            )
        )
        files.append(
            GeneratedFile(
                path="helix.config.json",
                content=project_config(project_name, blueprint),
                reason="Helix project marker",
            )
        )
        return files
