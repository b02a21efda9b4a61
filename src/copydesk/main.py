"""Command-line entry point.

Subcommands:
  copydesk status                  — config, hydration result, active pointers.
  copydesk projects                — list projects (marks the active one).
  copydesk new-project NAME        — create a project and make it active.
  copydesk documents [PROJECT_ID]  — list documents of a project (default: active).

``--verbose`` anywhere on the command line enables debug logging.
"""

import asyncio
import logging
import sys

USAGE = """\
Usage: copydesk [--verbose] <command> [args]

Commands:
  status                  Show configuration and the active project/document
  projects                List projects
  new-project NAME        Create a project and make it active
  documents [PROJECT_ID]  List documents (default: active project)
"""

COMMANDS = ("status", "projects", "new-project", "documents")


async def _run(command: str, args: list[str]) -> int:
    from .bootstrap import initialize
    from .context import create_desk_context
    from .errors import CopyDeskError
    from .settings import load_settings

    config = load_settings()
    ctx = create_desk_context(config)
    try:
        active = await initialize(ctx)

        if command == "status":
            state = ctx.state.state
            print(f"Data dir:        {config.data_dir}")
            print(f"Remote:          {config.remote_url or '(local only)'}")
            print(f"Active project:  {active.name} ({active.id})")
            print(f"Active document: {state.active_document_id or '-'}")
            print(f"Active tool:     {state.active_tool_id or '-'}")
            return 0

        if command == "projects":
            for p in await ctx.projects.list():
                marker = "*" if p.id == active.id else " "
                print(f"{marker} {p.id}  {p.name}")
            return 0

        if command == "new-project":
            if not args:
                print("new-project requires a NAME")
                return 2
            try:
                project = await ctx.projects.create(None, {"name": " ".join(args)})
            except CopyDeskError as e:
                print(f"Error: {e}")
                return 1
            ctx.state.set_active_project_id(project.id)
            print(f"Created project {project.name!r} ({project.id})")
            return 0

        if command == "documents":
            project_id = args[0] if args else active.id
            docs = await ctx.documents.list(project_id)
            if not docs:
                print("No documents.")
            for d in docs:
                print(
                    f"{d.id}  {d.title}  "
                    f"({d.metadata.word_count} words, modified {d.modified_at})"
                )
            return 0

        print(USAGE)
        return 2
    finally:
        await ctx.aclose()


def main() -> None:
    """Main entry point."""
    argv = sys.argv[1:]
    verbose = "--verbose" in argv
    argv = [a for a in argv if a != "--verbose"]

    if not argv or argv[0] in ("-h", "--help", "help"):
        print(USAGE)
        return
    if argv[0] not in COMMANDS:
        print(f"Unknown command: {argv[0]}\n")
        print(USAGE)
        sys.exit(2)

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.WARNING,
    )
    if verbose:
        logging.getLogger("copydesk").setLevel(logging.DEBUG)

    try:
        code = asyncio.run(_run(argv[0], argv[1:]))
    except ValueError as e:
        print(f"Error: {e}\n")
        print("Check your settings.toml configuration.")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
