"""

Command line utility to resolve JSON schemas and validate JSON instances against them.

"""


import argparse
import json
import logging
import os
import pathlib
import sys
from typing import List, Optional

from schemarepo import _version
from schemarepo.options import Draft, JsonSchemaOptions, OutputFormat
from schemarepo.repository import SchemaRepository

ARG_TYPES = {'str': str, 'int': int, 'float': float}


def load_commands():
    """Load the commands from the commands.json file."""
    commands_path = os.path.join(os.path.dirname(__file__), 'commands.json')
    with open(commands_path, 'r', encoding='utf-8') as f:
        return json.load(f)

def create_subparsers(subparsers, commands):
    """Create subparsers for the commands."""
    for command in commands:
        cmd_parser = subparsers.add_parser(command['command'], help=command['description'])
        for arg in command['args']:
            kwargs = {
                'help': arg['help'],
            }
            if 'nargs' in arg:
                kwargs['nargs'] = arg['nargs']
            if 'choices' in arg:
                kwargs['choices'] = arg['choices']
            if 'default' in arg:
                kwargs['default'] = arg['default']
            if arg['type'] == 'bool':
                kwargs['action'] = 'store_true'
            else:
                kwargs['type'] = ARG_TYPES[arg['type']]
            carg = cmd_parser.add_argument(arg['name'], **kwargs)
            carg.required = arg.get('required', True)

def dynamic_import(module, func):
    """Dynamically import a module and function."""
    mod = __import__(module, fromlist=[func])
    return getattr(mod, func)

def load_json(path: str):
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)

def file_uri(path: str) -> str:
    return pathlib.Path(path).resolve().as_uri()

def create_repository(schema_path: str, base_uri: Optional[str] = None, ref_paths: Optional[List[str]] = None,
                      allow_remote: bool = False, draft: str = '2020-12', output: str = 'flag'):
    """Creates a repository with the schema and any extra schema files dereferenced."""
    options = JsonSchemaOptions(base_uri=base_uri or file_uri(schema_path),
                                draft=Draft.from_identifier(draft),
                                output_format=OutputFormat(output),
                                allow_remote=allow_remote)
    repository = SchemaRepository.create(options)
    for ref_path in ref_paths or []:
        repository.dereference(file_uri(ref_path), load_json(ref_path))
    schema = load_json(schema_path)
    repository.dereference(schema)
    return repository, schema

def validate_command(schema_path: str, instance_path: str, base_uri: Optional[str] = None,
                     ref_paths: Optional[List[str]] = None, allow_remote: bool = False,
                     draft: str = '2020-12', output: str = 'flag') -> bool:
    """Validates an instance file against a schema file and prints the outcome."""
    repository, schema = create_repository(schema_path, base_uri, ref_paths, allow_remote, draft, output)
    result = repository.validator(schema).validate(load_json(instance_path))
    print(result)
    if result.output_format is OutputFormat.BASIC:
        print(json.dumps(result.to_dict(), indent=2))
    return result.is_valid

def deref_command(schema_path: str, base_uri: Optional[str] = None) -> bool:
    """Resolves a schema file and prints the URIs of all addressable subschemas."""
    repository, _ = create_repository(schema_path, base_uri)
    print(json.dumps(repository.uris(), indent=2))
    return True

def main():
    """Main function for the command line utility."""
    commands = load_commands()
    parser = argparse.ArgumentParser(description='Resolve JSON schemas and validate JSON instances against them.')
    parser.add_argument('--version', action='store_true', help='Print the version of schemarepo.')
    parser.add_argument('--verbose', action='store_true', help='Log resolution and loading details.')

    subparsers = parser.add_subparsers(dest='command')
    create_subparsers(subparsers, commands)

    args = parser.parse_args()

    if 'version' in args and args.version:
        print(f'schemarepo {_version.version}')
        return

    if args.command is None:
        parser.print_help()
        return

    if getattr(args, 'verbose', False):
        logging.basicConfig(level=logging.DEBUG, format='%(levelname)s %(name)s: %(message)s')

    command = next((cmd for cmd in commands if cmd['command'] == args.command), None)
    if not command:
        print(f"Error: Command {args.command} not found.")
        sys.exit(1)

    try:
        module_name, func_name = command['function']['name'].rsplit('.', 1)
        func = dynamic_import(module_name, func_name)
        func_args = {}
        for arg, val in command['function']['args'].items():
            if val.startswith('args.') and hasattr(args, val[5:]):
                func_args[arg] = getattr(args, val[5:])
        succeeded = func(**func_args)
    except Exception as e:  # pylint: disable=broad-except
        print("Error: ", str(e))
        sys.exit(1)
    if not succeeded:
        sys.exit(1)

if __name__ == "__main__":
    main()
