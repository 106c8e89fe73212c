"""CLI commands."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Tuple

import click
import yaml

from ..config.loader import save_settings
from ..models.settings import StoreSettings
from ..store import ConfigStoreError


def _parse_value(raw: str):
    """Parse a command line value as YAML, so ``1`` is a number."""
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw


@click.command("show")
@click.pass_context
def show_command(ctx):
    """显示当前 profile 的全部配置。"""
    store = ctx.obj["store"]
    configs = asyncio.run(store.get_object())
    click.echo(yaml.dump(configs, default_flow_style=False, allow_unicode=True, sort_keys=True))


@click.command("get")
@click.argument("name")
@click.option("--default", "fallback", type=str, default=None, help="Value printed when the config has no value")
@click.pass_context
def get_command(ctx, name: str, fallback):
    """读取单个配置。"""
    store = ctx.obj["store"]
    value = asyncio.run(store.get_config(name, fallback))
    if value is None:
        click.echo(f"Config '{name}' not found", err=True)
        sys.exit(1)
    click.echo(value if isinstance(value, str) else json.dumps(value, ensure_ascii=False))


@click.command("set")
@click.argument("pairs", nargs=-1, required=True)
@click.option("--flag-profile", type=str, default=None, help="Profile the useDefaultConfigs flag is written to")
@click.pass_context
def set_command(ctx, pairs: Tuple[str, ...], flag_profile):
    """批量保存配置，参数格式 NAME=VALUE。"""
    store = ctx.obj["store"]

    objects = []
    for pair in pairs:
        name, sep, raw = pair.partition("=")
        if not sep or not name:
            click.echo(f"Invalid config '{pair}', expected NAME=VALUE", err=True)
            sys.exit(2)
        objects.append({"name": name, "value": _parse_value(raw)})

    async def _save():
        for obj in objects:
            if await store.get_model(obj["name"]) is None:
                raise ConfigStoreError(f"Unknown config: {obj['name']}")
        await store.save_objects(objects, flag_profile)

    try:
        asyncio.run(_save())
        click.echo(f"已保存 {len(objects)} 项配置")
    except ConfigStoreError as e:
        click.echo(f"保存配置失败: {e}", err=True)
        sys.exit(1)


@click.command("reset-encrypt")
@click.pass_context
def reset_encrypt_command(ctx):
    """清空加密配置备份。"""
    store = ctx.obj["store"]
    try:
        entry = asyncio.run(store.reset_encrypt())
        click.echo(f"已清空 {entry.profile_id} 的加密备份")
    except ConfigStoreError as e:
        click.echo(f"清空失败: {e}", err=True)
        sys.exit(1)


# Profile management commands
@click.group("profiles")
def profiles_command():
    """管理 profile。"""
    pass


@profiles_command.command("list")
@click.pass_context
def profiles_list(ctx):
    """列出与当前 profile 共享配置的 profile。"""
    store = ctx.obj["store"]
    profiles = asyncio.run(store.get_profiles())
    for profile in profiles:
        marker = " (default)" if profile == store.default_profile else ""
        click.echo(f"{profile}{marker}")


@profiles_command.command("create")
@click.argument("name")
@click.pass_context
def profiles_create(ctx, name: str):
    """创建 profile。"""
    store = ctx.obj["store"]
    try:
        profile = asyncio.run(store.create_profile(name))
        click.echo(f"已创建 profile: {profile}")
    except ConfigStoreError as e:
        click.echo(f"创建失败: {e}", err=True)
        sys.exit(1)


@profiles_command.command("remove")
@click.argument("name")
@click.confirmation_option(prompt="删除 profile 会丢失其全部配置，确定继续？")
@click.pass_context
def profiles_remove(ctx, name: str):
    """删除 profile。"""
    store = ctx.obj["store"]
    try:
        asyncio.run(store.remove_profile(name))
        click.echo(f"已删除 profile: {name}")
    except ConfigStoreError as e:
        click.echo(f"删除失败: {e}", err=True)
        sys.exit(1)


# Store settings commands
@click.group("settings")
def settings_command():
    """存储设置管理命令。"""
    pass


@settings_command.command("show")
@click.pass_context
def show_settings(ctx):
    """显示当前存储设置。"""
    settings_manager = ctx.obj["settings_manager"]
    click.echo(yaml.dump(settings_manager.get_settings_dict(), default_flow_style=False, allow_unicode=True))


@settings_command.command("set")
@click.argument("pairs", nargs=-1, required=True)
@click.pass_context
def set_settings(ctx, pairs: Tuple[str, ...]):
    """修改存储设置并写回设置文件，参数格式 KEY=VALUE。"""
    settings_manager = ctx.obj["settings_manager"]

    updates = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or key not in StoreSettings.model_fields:
            click.echo(f"Invalid setting '{pair}', expected KEY=VALUE", err=True)
            sys.exit(2)
        updates[key] = _parse_value(raw)

    try:
        settings_manager.update(**updates)
        settings_manager.save()
        click.echo(f"设置已保存到: {settings_manager.settings_path}")
    except (ValueError, OSError) as e:
        click.echo(f"保存设置失败: {e}", err=True)
        sys.exit(1)


@settings_command.command("reset")
@click.confirmation_option(prompt="将设置文件恢复为默认值，确定继续？")
@click.pass_context
def reset_settings(ctx):
    """将设置文件恢复为默认值。"""
    settings_manager = ctx.obj["settings_manager"]
    try:
        settings_manager.reset()
        settings_manager.save()
        click.echo(f"设置已重置: {settings_manager.settings_path}")
    except (ValueError, OSError) as e:
        click.echo(f"重置设置失败: {e}", err=True)
        sys.exit(1)


@settings_command.command("generate")
@click.argument("output_file", type=click.Path(path_type=Path))
def generate_settings(output_file: Path):
    """生成默认设置文件。"""
    try:
        save_settings(StoreSettings(), output_file)
        click.echo(f"设置已保存到: {output_file}")
    except OSError as e:
        click.echo(f"保存设置失败: {e}", err=True)
        sys.exit(1)
