"""
Flutter target — Provider-based mobile app in the "Deep Void" theme.

Per strand: a model class and a ChangeNotifier provider.
Per view: a screen laid out according to its view descriptor.

Options:
    db  local     in-memory providers (default)
        supabase  providers backed by Supabase + ``supabase_schema.sql``
    ai  none      (default)
        openrouter  ``lib/services/ai_service.dart`` with a persona taken
                    from the context's AI directives section
"""

from __future__ import annotations

import re

from helix.core.models.blueprint import Blueprint, FieldType, Strand
from helix.core.models.descriptors import Layout, TableDescriptor, ViewDescriptor
from helix.core.models.template import GeneratedFile, ManifestMetadata
from helix.core.services.generators.schema import table_for
from helix.core.services.generators.ui import view_for
from helix.core.services.naming import camel_case, snake_case
from helix.plugins.base import BlueprintPlugin

DEFAULT_PERSONA = "You are a helpful strategic analyst."

_DIRECTIVE_PATTERNS = (
    re.compile(r"##\s*AI\s*DIRECTIVES[^\n]*\n([\s\S]*?)(?=\n##\s|\n#\s|$)", re.IGNORECASE),
    re.compile(r"##\s*AI\s*CONSTITUTION[^\n]*\n([\s\S]*?)(?=\n##\s|\n#\s|$)", re.IGNORECASE),
    re.compile(r"##\s*🤖\s*INSTRUCTIONS[^\n]*\n([\s\S]*?)(?=\n##\s|\n#\s|$)", re.IGNORECASE),
)

_DART_TYPES: dict[FieldType, str] = {
    FieldType.TEXT: "String",
    FieldType.INTEGER: "int",
    FieldType.DECIMAL: "double",
    FieldType.BOOLEAN: "bool",
    FieldType.TIMESTAMP: "DateTime",
}

_DART_FROM_JSON: dict[FieldType, str] = {
    FieldType.TEXT: "(json['{k}'] ?? '') as String",
    FieldType.INTEGER: "(json['{k}'] as num? ?? 0).toInt()",
    FieldType.DECIMAL: "(json['{k}'] as num? ?? 0).toDouble()",
    FieldType.BOOLEAN: "(json['{k}'] ?? false) as bool",
    FieldType.TIMESTAMP: "DateTime.tryParse('${{json['{k}']}}') ?? DateTime.now()",
}

_SQL_TYPES: dict[FieldType, str] = {
    FieldType.TEXT: "text",
    FieldType.INTEGER: "integer",
    FieldType.DECIMAL: "double precision",
    FieldType.BOOLEAN: "boolean",
    FieldType.TIMESTAMP: "timestamptz",
}

_HEADER = "// Generated by Helix. Changes will be overwritten on regenerate.\n"


def extract_ai_directives(context: str | None) -> str:
    """Persona text from the first AI directives section, or the default."""
    if context:
        for pattern in _DIRECTIVE_PATTERNS:
            match = pattern.search(context)
            if match and match.group(1).strip():
                return match.group(1).strip()
    return DEFAULT_PERSONA


def dart_string(text: str) -> str:
    """Escape text for a single-quoted Dart literal."""
    return (
        text.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("$", "\\$")
        .replace("\n", "\\n")
        .replace("\r", "")
    )


# ── Models ──────────────────────────────────────────────────────


def dart_model(strand: Strand) -> str:
    fields = strand.fields
    decls = "\n".join(f"  final {_DART_TYPES[f.type]} {camel_case(f.name)};" for f in fields)
    ctor = "".join(f"    required this.{camel_case(f.name)},\n" for f in fields)
    from_json = "".join(
        f"      {camel_case(f.name)}: {_DART_FROM_JSON[f.type].format(k=f.name)},\n" for f in fields
    )
    to_json = "".join(
        f"        '{f.name}': {camel_case(f.name)}"
        + (".toIso8601String()" if f.type == FieldType.TIMESTAMP else "")
        + ",\n"
        for f in fields
    )
    return f"""{_HEADER}class {strand.name} {{
  final String id;
{decls}

  {strand.name}({{
    required this.id,
{ctor}  }});

  factory {strand.name}.fromJson(Map<String, dynamic> json) {{
    return {strand.name}(
      id: '${{json['id']}}',
{from_json}    );
  }}

  Map<String, dynamic> toJson() => {{
        'id': id,
{to_json}      }};
}}
"""


# ── Providers ───────────────────────────────────────────────────


def dart_provider(strand: Strand, table: TableDescriptor, db: str) -> str:
    cls = strand.name
    model_file = snake_case(cls)
    if db == "supabase":
        return f"""{_HEADER}import 'package:flutter/foundation.dart';
import 'package:supabase_flutter/supabase_flutter.dart';

import '../models/{model_file}.dart';

class {cls}Provider extends ChangeNotifier {{
  final _client = Supabase.instance.client;
  List<{cls}> _items = [];

  List<{cls}> get items => List.unmodifiable(_items);

  Stream<List<{cls}>> watch() => _client
      .from('{table.table}')
      .stream(primaryKey: ['id'])
      .map((rows) => rows.map({cls}.fromJson).toList());

  Future<void> load() async {{
    final rows = await _client.from('{table.table}').select();
    _items = (rows as List).map((r) => {cls}.fromJson(r as Map<String, dynamic>)).toList();
    notifyListeners();
  }}

  Future<void> add(Map<String, dynamic> data) async {{
    await _client.from('{table.table}').insert(data);
    await load();
  }}

  Future<void> remove(String id) async {{
    await _client.from('{table.table}').delete().eq('id', id);
    _items.removeWhere((i) => i.id == id);
    notifyListeners();
  }}
}}
"""

    return f"""{_HEADER}import 'package:flutter/foundation.dart';

import '../models/{model_file}.dart';

class {cls}Provider extends ChangeNotifier {{
  final List<{cls}> _items = [];

  List<{cls}> get items => List.unmodifiable(_items);

  Future<void> load() async {{}}

  Future<void> add(Map<String, dynamic> data) async {{
    _items.add({cls}.fromJson({{
      ...data,
      'id': DateTime.now().microsecondsSinceEpoch.toString(),
    }}));
    notifyListeners();
  }}

  Future<void> remove(String id) async {{
    _items.removeWhere((i) => i.id == id);
    notifyListeners();
  }}
}}
"""


# ── Screens ─────────────────────────────────────────────────────


def _item_widget(desc: ViewDescriptor) -> str:
    slots = desc.slots
    if desc.layout == Layout.GALLERY:
        image = camel_case(slots.get("image", ""))
        caption = camel_case(slots.get("caption", "id"))
        return f"""Card(
            color: const Color(0xFF1a1a2e),
            clipBehavior: Clip.antiAlias,
            child: Column(
              crossAxisAlignment: CrossAxisAlignment.stretch,
              children: [
                Expanded(child: Image.network('${{item.{image}}}', fit: BoxFit.cover)),
                Padding(
                  padding: const EdgeInsets.all(8),
                  child: Text('${{item.{caption}}}', style: const TextStyle(color: Colors.white)),
                ),
              ],
            ),
          )"""
    if desc.layout == Layout.BOARD:
        group = camel_case(slots.get("group_by", ""))
        title = camel_case(slots.get("title", "id"))
        return f"""Card(
            color: const Color(0xFF1a1a2e),
            child: ListTile(
              title: Text('${{item.{title}}}', style: const TextStyle(color: Colors.white)),
              trailing: Chip(label: Text('${{item.{group}}}')),
            ),
          )"""
    if desc.layout == Layout.FEED:
        title = camel_case(slots.get("title", ""))
        body = camel_case(slots.get("body", ""))
        return f"""Card(
            color: const Color(0xFF1a1a2e),
            child: ListTile(
              title: Text('${{item.{title}}}', style: const TextStyle(color: Colors.white)),
              subtitle: Text('${{item.{body}}}', style: const TextStyle(color: Colors.white70)),
            ),
          )"""

    rows = ", ".join(f"'{name}: ${{item.{camel_case(name)}}}'" for name in desc.fields)
    return f"""Card(
            color: const Color(0xFF1a1a2e),
            child: Padding(
              padding: const EdgeInsets.all(12),
              child: Text([{rows}].join('\\n'), style: const TextStyle(color: Colors.white70)),
            ),
          )"""


def dart_screen(desc: ViewDescriptor, strand: Strand | None) -> str:
    cls = f"{desc.view}Screen"
    if strand is None:
        return f"""{_HEADER}import 'package:flutter/material.dart';

class {cls} extends StatelessWidget {{
  const {cls}({{super.key}});

  @override
  Widget build(BuildContext context) {{
    return Scaffold(
      appBar: AppBar(title: const Text('{dart_string(desc.view)}')),
      body: const Center(child: Text('{dart_string(desc.view)}')),
    );
  }}
}}
"""

    provider = f"{strand.name}Provider"
    if desc.layout == Layout.GALLERY:
        builder = "GridView.builder(\n        gridDelegate: const SliverGridDelegateWithFixedCrossAxisCount(crossAxisCount: 2),"
    else:
        builder = "ListView.builder("
    return f"""{_HEADER}import 'package:flutter/material.dart';
import 'package:provider/provider.dart';

import '../providers/{snake_case(strand.name)}_provider.dart';

class {cls} extends StatelessWidget {{
  const {cls}({{super.key}});

  @override
  Widget build(BuildContext context) {{
    final items = context.watch<{provider}>().items;
    return Scaffold(
      appBar: AppBar(title: const Text('{dart_string(desc.view)}')),
      body: items.isEmpty
          ? const Center(child: Text('No {strand.name.lower()} records yet', style: TextStyle(color: Colors.white70)))
          : {builder}
        itemCount: items.length,
        itemBuilder: (context, index) {{
          final item = items[index];
          return GestureDetector(
            onLongPress: () => context.read<{provider}>().remove(item.id),
            child: {_item_widget(desc)},
          );
        }},
      ),
    );
  }}
}}
"""


# ── App shell ───────────────────────────────────────────────────


def dart_main(
    title: str,
    strands: list[Strand],
    views: list[ViewDescriptor],
    db: str,
    ai: str,
) -> str:
    imports = ["import 'package:flutter/material.dart';", "import 'package:provider/provider.dart';"]
    if db == "supabase":
        imports.append("import 'package:supabase_flutter/supabase_flutter.dart';")
    imports.append("")
    imports += [f"import 'providers/{snake_case(s.name)}_provider.dart';" for s in strands]
    imports += [f"import 'screens/{snake_case(v.view)}_screen.dart';" for v in views]
    if ai == "openrouter":
        imports.append("import 'services/ai_service.dart';")

    config = ""
    init = "  WidgetsFlutterBinding.ensureInitialized();\n"
    if db == "supabase":
        config = (
            "const String SUPABASE_URL = 'YOUR_SUPABASE_URL';\n"
            "const String SUPABASE_ANON_KEY = 'YOUR_SUPABASE_ANON_KEY';\n\n"
        )
        init += "  await Supabase.initialize(url: SUPABASE_URL, anonKey: SUPABASE_ANON_KEY);\n"

    providers = "\n".join(
        f"        ChangeNotifierProvider(create: (_) => {s.name}Provider()..load()),"
        for s in strands
    )
    tiles = "\n".join(
        f"""          ListTile(
            title: const Text('{dart_string(v.view)}', style: TextStyle(color: Colors.white)),
            trailing: const Icon(Icons.chevron_right, color: Color(0xFFFFD700)),
            onTap: () => Navigator.push(context, MaterialPageRoute(builder: (_) => const {v.view}Screen())),
          ),"""
        for v in views
    )
    ai_button = ""
    if ai == "openrouter":
        ai_button = """
      floatingActionButton: FloatingActionButton.extended(
        heroTag: 'ai_fab',
        backgroundColor: const Color(0xFF7F00FF),
        icon: const Icon(Icons.psychology),
        label: const Text('AI Analyst'),
        onPressed: () async {
          final reply = await OpenRouterService.instance.sendMessage('Summarize my data', '');
          if (context.mounted) {
            showDialog(context: context, builder: (_) => AlertDialog(content: Text(reply)));
          }
        },
      ),"""

    import_block = "\n".join(imports)
    provider_block = (
        f"    MultiProvider(\n      providers: [\n{providers}\n      ],\n      child: const HelixApp(),\n    ),"
        if strands
        else "    const HelixApp(),"
    )
    return f"""{_HEADER}{import_block}

{config}void main() async {{
{init}  runApp(
{provider_block}
  );
}}

class HelixApp extends StatelessWidget {{
  const HelixApp({{super.key}});

  @override
  Widget build(BuildContext context) {{
    return MaterialApp(
      title: '{dart_string(title)}',
      theme: ThemeData(
        useMaterial3: true,
        brightness: Brightness.dark,
        scaffoldBackgroundColor: const Color(0xFF0a0a12),
        primaryColor: const Color(0xFFFFD700),
        cardColor: const Color(0xFF1a1a2e),
      ),
      home: const HomeScreen(),
    );
  }}
}}

class HomeScreen extends StatelessWidget {{
  const HomeScreen({{super.key}});

  @override
  Widget build(BuildContext context) {{
    return Scaffold(
      appBar: AppBar(title: const Text('{dart_string(title)}')),
      body: ListView(
        children: [
{tiles}
        ],
      ),{ai_button}
    );
  }}
}}
"""


def supabase_schema(tables: list[TableDescriptor], title: str) -> str:
    blocks = []
    for table in tables:
        cols = [
            "  id uuid primary key default gen_random_uuid()",
            *(f"  {c.name} {_SQL_TYPES[c.type]}" for c in table.columns),
            "  created_at timestamptz not null default now()",
            "  updated_at timestamptz not null default now()",
        ]
        blocks.append(
            f"create table if not exists public.{table.table} (\n"
            + ",\n".join(cols)
            + "\n);\n\n"
            f"alter table public.{table.table} enable row level security;\n"
            f"create policy \"Public access\" on public.{table.table} for all using (true);\n"
        )

    header = (
        "-- Helix Generated Supabase Schema\n"
        f"-- Generated for: {title}\n"
        "--\n"
        "-- INSTRUCTIONS:\n"
        "-- 1. Go to your Supabase project dashboard\n"
        "-- 2. Navigate to SQL Editor\n"
        "-- 3. Paste this entire file and run it\n"
        "-- 4. Enable Realtime for the table in Table Editor > Realtime\n"
        "--\n"
        "-- ============================================================================\n\n"
    )
    return header + "\n".join(blocks)


def ai_service(persona: str) -> str:
    return f"""{_HEADER}import 'dart:convert';

import 'package:http/http.dart' as http;

const String OPENROUTER_API_KEY = 'YOUR_OPENROUTER_API_KEY';
const String _endpoint = 'https://openrouter.ai/api/v1/chat/completions';
const String _model = 'meta-llama/llama-3-8b-instruct:free';
const String _systemPersona = '{dart_string(persona)}';

class OpenRouterService {{
  OpenRouterService._();
  static final OpenRouterService instance = OpenRouterService._();

  Future<String> sendMessage(String userMessage, String dataContext) async {{
    try {{
      final response = await http.post(
        Uri.parse(_endpoint),
        headers: {{
          'Authorization': 'Bearer $OPENROUTER_API_KEY',
          'Content-Type': 'application/json',
          'HTTP-Referer': 'https://helix-app.dev',
          'X-Title': 'Helix AI',
        }},
        body: jsonEncode({{
          'model': _model,
          'messages': [
            {{'role': 'system', 'content': '$_systemPersona\\n\\nCurrent Data Context: $dataContext'}},
            {{'role': 'user', 'content': userMessage}},
          ],
        }}),
      );
      if (response.statusCode != 200) {{
        return 'AI error: ${{response.statusCode}}';
      }}
      final data = jsonDecode(response.body) as Map<String, dynamic>;
      return data['choices'][0]['message']['content'] as String;
    }} catch (e) {{
      return 'AI error: $e';
    }}
  }}
}}
"""


class FlutterPlugin(BlueprintPlugin):
    name = "helix-gen-flutter"
    target = "flutter"
    version = "1.0.0"
    description = "Flutter mobile app (Provider, optional Supabase and OpenRouter)"
    options_schema = {"db": ("local", "supabase"), "ai": ("none", "openrouter")}

    def dependencies(self) -> list[str]:
        return ["provider"]

    def dependencies_for(self, options: dict[str, str]) -> list[str]:
        deps = self.dependencies()
        if options.get("db") == "supabase":
            deps.append("supabase_flutter")
        if options.get("ai") == "openrouter":
            deps.append("http")
        return deps

    def scaffold_command(self, project_name: str) -> list[str] | None:
        return ["flutter", "create", snake_case(project_name) or "helix_app", "--org", "com.helix"]

    def metadata(self, options: dict[str, str]) -> ManifestMetadata:
        meta = super().metadata(options)
        return meta.model_copy(
            update={"database": options.get("db", "local"), "ai": options.get("ai", "none")}
        )

    def lower(
        self,
        blueprint: Blueprint,
        context: str | None,
        options: dict[str, str],
    ) -> list[GeneratedFile]:
        db = options.get("db", "local")
        ai = options.get("ai", "none")
        title = options.get("title") or options.get("project_name") or "Helix App"

        files: list[GeneratedFile] = []
        tables: list[TableDescriptor] = []
        for strand in blueprint.strands:
            table = table_for(strand)
            tables.append(table)
            stem = snake_case(strand.name)
            files.append(
                GeneratedFile(
                    path=f"lib/models/{stem}.dart",
                    content=dart_model(strand),
                    overwrite=True,
                    reason=f"Model for {strand.name}",
                )
            )
            files.append(
                GeneratedFile(
                    path=f"lib/providers/{stem}_provider.dart",
                    content=dart_provider(strand, table, db),
                    overwrite=True,
                    reason=f"{db} provider for {strand.name}",
                )
            )

        descriptors: list[ViewDescriptor] = []
        for view in blueprint.views:
            strand = blueprint.strand_for(view)
            desc = view_for(view, strand)
            descriptors.append(desc)
            files.append(
                GeneratedFile(
                    path=f"lib/screens/{snake_case(view.name)}_screen.dart",
                    content=dart_screen(desc, strand),
                    overwrite=True,
                    reason=f"{desc.layout.value} screen for {view.name}",
                )
            )

        files.append(
            GeneratedFile(
                path="lib/main.dart",
                content=dart_main(title, list(blueprint.strands), descriptors, db, ai),
                overwrite=True,
                reason="App entrypoint",
            )
        )

        if db == "supabase":
            files.append(
                GeneratedFile(
                    path="supabase_schema.sql",
                    content=supabase_schema(tables, title),
                    overwrite=True,
                    reason="Supabase tables",
                )
            )

        if ai == "openrouter":
            files.append(
                GeneratedFile(
                    path="lib/services/ai_service.dart",
                    content=ai_service(extract_ai_directives(context)),
                    overwrite=True,
                    reason="OpenRouter service with extracted persona",
                )
            )
        return files
