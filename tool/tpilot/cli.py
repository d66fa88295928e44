"""
CLI エントリポイント — Typer ベースのコマンドラインインターフェース

testpilot コマンドとして以下のサブコマンドを提供する:
  - record: ブラウザ操作を記録し、テストスクリプトを出力
  - compile: 保存済みステップ列（YAML）からテストスクリプトを生成
  - inspect: 保存済みステップ列の指定ステップを表示（タイムトラベル）
  - dialects: 対応方言の一覧
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer

from .compiler import ScriptCompiler, registry_for
from .config import RecorderConfig, configure_logging, load_config_from_env
from .drivers.playwright_target import PlaywrightTarget
from .recording.controller import RecordingController
from .recording.models import StepSequence
from .recording.store import StepStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Typer アプリ定義
# ---------------------------------------------------------------------------

app = typer.Typer(
    help=(
        "testpilot — ブラウザ操作を記録してテストスクリプトを生成するツール\n\n"
        "基本の流れ:\n"
        "  1. testpilot record URL --save-steps steps.yaml  操作を記録\n"
        "  2. testpilot compile steps.yaml --dialect typescript  別方言で再生成\n\n"
        "詳しくは各コマンドに --help を付けてください。"
    ),
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="ログレベル (DEBUG / INFO / WARNING / ERROR)",
    ),
) -> None:
    """ログ出力を設定する。"""
    level = log_level or load_config_from_env().log_level
    configure_logging(level)


def _parse_viewport(viewport: str) -> tuple[int, int]:
    """'幅,高さ' 形式のビューポート指定を解析する。"""
    vp_parts = viewport.split(",")
    vp_width = int(vp_parts[0])
    vp_height = int(vp_parts[1]) if len(vp_parts) > 1 else 720
    return vp_width, vp_height


# ---------------------------------------------------------------------------
# record コマンド
# ---------------------------------------------------------------------------

@app.command()
def record(
    url: str = typer.Argument(..., help="記録対象の URL"),
    dialect: Optional[str] = typer.Option(
        None, "--dialect", "-d", help="出力するスクリプト方言（デフォルト: javascript）",
    ),
    save_steps: Optional[Path] = typer.Option(
        None, "--save-steps", help="記録したステップ列を YAML で保存するパス",
    ),
    headed: Optional[bool] = typer.Option(
        None, "--headed/--headless", help="ブラウザ表示モード（デフォルト: 表示）",
    ),
    channel: Optional[str] = typer.Option(
        None, "--channel", "-c", help="ブラウザチャンネル (chromium / chrome / msedge)",
    ),
    viewport: Optional[str] = typer.Option(
        None, "--viewport", help="ビューポートサイズ (幅,高さ)",
    ),
    duration: Optional[float] = typer.Option(
        None, "--duration", help="記録時間（秒）。省略時はブラウザを閉じるまで記録",
    ),
) -> None:
    """ブラウザ操作を記録し、テストスクリプトを標準出力に出力する。

    ブラウザを閉じると記録が終了します。
    --save-steps を指定すると、後から compile で別方言に変換できます。
    """
    try:
        config = load_config_from_env()
        if headed is not None:
            config.headed = headed
        if channel is not None:
            config.channel = channel  # type: ignore[assignment]
        if viewport is not None:
            config.viewport_width, config.viewport_height = _parse_viewport(viewport)
        if dialect is not None:
            config.dialect = dialect

        # 方言の誤りは記録前に検出する
        registry_for(config).get(config.dialect)

        typer.echo(f"URL: {url}", err=True)
        typer.echo("ブラウザを閉じると記録が終了します。\n", err=True)

        sequence = asyncio.run(_record(url, config, duration))
        typer.echo(f"記録完了: {len(sequence)} ステップ", err=True)

        if save_steps is not None:
            sequence.save_yaml(save_steps)
            typer.echo(f"ステップ列を保存しました: {save_steps}", err=True)

        script = ScriptCompiler(registry_for(config)).compile(
            sequence, sequence.target_url, config.dialect,
        )
        typer.echo(script.source_text, nl=False)
    except KeyboardInterrupt:
        typer.echo("記録がキャンセルされました。", err=True)
        raise typer.Exit(code=1)
    except typer.Exit:
        raise
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)


async def _record(
    url: str,
    config: RecorderConfig,
    duration: Optional[float],
) -> StepSequence:
    """記録を開始し、ブラウザが閉じられるか指定時間が経過するまで待つ。

    Args:
        url: 記録対象 URL
        config: レコーダー設定
        duration: 記録時間（秒）。None の場合は無制限

    Returns:
        封印済みステップ列
    """
    controller = RecordingController(PlaywrightTarget(config), config=config)
    session = await controller.start_recording(url)

    try:
        if duration is not None and duration > 0:
            try:
                await asyncio.wait_for(session.wait_stopped(), timeout=duration)
            except asyncio.TimeoutError:
                logger.info("記録時間 %.1f 秒が経過しました", duration)
                await controller.stop_recording("duration_elapsed")
        else:
            await session.wait_stopped()
    finally:
        # 中断時もブラウザを確実に閉じる（停止済みなら何もしない）
        await controller.stop_recording("interrupted")

    return controller.get_steps()


# ---------------------------------------------------------------------------
# compile コマンド
# ---------------------------------------------------------------------------

@app.command("compile")
def compile_steps(
    steps_file: Path = typer.Argument(..., help="ステップ列の YAML ファイル"),
    dialect: Optional[str] = typer.Option(
        None, "--dialect", "-d", help="出力するスクリプト方言（デフォルト: javascript）",
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="出力先ファイルパス（省略時は標準出力）",
    ),
) -> None:
    """保存済みステップ列からテストスクリプトを生成する。"""
    try:
        config = load_config_from_env()
        sequence = StepSequence.load_yaml(steps_file)
        script = ScriptCompiler(registry_for(config)).compile(
            sequence, sequence.target_url, dialect or config.dialect,
        )

        if output is not None:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(script.source_text, encoding="utf-8")
            typer.echo(f"生成完了: {output}", err=True)
        else:
            typer.echo(script.source_text, nl=False)
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# inspect コマンド
# ---------------------------------------------------------------------------

@app.command()
def inspect(
    steps_file: Path = typer.Argument(..., help="ステップ列の YAML ファイル"),
    step: Optional[int] = typer.Option(
        None, "--step", "-s", help="表示するステップ番号（0 始まり）。省略時は一覧",
    ),
) -> None:
    """保存済みステップ列を表示する。--step で指定ステップの詳細を表示する。"""
    try:
        sequence = StepSequence.load_yaml(steps_file)
        typer.echo(f"URL: {sequence.target_url}")

        if step is None:
            for i, recorded in enumerate(sequence):
                typer.echo(
                    f"  [{i}] {recorded.event:8s} {recorded.action:12s} "
                    f"t={recorded.timestamp:.0f}"
                )
            typer.echo(f"\n合計: {len(sequence)} ステップ")
            return

        store = StepStore.from_sequence(sequence)
        recorded = store.set_cursor(step)
        typer.echo(f"ステップ {store.cursor + 1}/{len(store)}")
        typer.echo(f"  action:    {recorded.action}")
        typer.echo(f"  event:     {recorded.event}")
        typer.echo(f"  timestamp: {recorded.timestamp:.0f}")
        if recorded.value is not None:
            typer.echo(f"  value:     {recorded.value}")
        if recorded.selector is not None:
            hint = recorded.selector.model_dump(exclude_none=True, exclude_defaults=True)
            typer.echo(f"  selector:  {hint}")
        typer.echo(f"  artifact:  {recorded.artifact}")
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# dialects コマンド
# ---------------------------------------------------------------------------

@app.command()
def dialects() -> None:
    """対応しているスクリプト方言の一覧を表示する。"""
    registry = registry_for(load_config_from_env())
    for info in registry.list_all():
        typer.echo(f"  {info.name:20s} {info.description}")

    typer.echo(f"\n合計: {len(registry.names)} 方言")


if __name__ == "__main__":
    app()
