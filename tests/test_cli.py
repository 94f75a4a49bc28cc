import pytest
from PIL import Image

from qr_poster import api_client
from qr_poster.cli import create_parser, main
from tests.fakes import EmptyArtClient, FailingArtClient, FakeArtClient, png_data_uri


def test_parser_render_defaults():
    args = create_parser().parse_args(["render"])
    assert args.command == "render"
    assert args.theme == "cyberpunk"
    assert args.position == "center"
    assert args.size == 180
    assert args.output == "qr_poster.png"
    assert args.api == "gemini"


def test_parser_rejects_unknown_theme():
    with pytest.raises(SystemExit):
        create_parser().parse_args(["render", "--theme", "gothic"])


def test_parser_background_options_are_exclusive():
    with pytest.raises(SystemExit):
        create_parser().parse_args(["render", "--generate", "--no-background"])


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        create_parser().parse_args([])


def test_render_gradient_poster(tmp_path, capsys):
    output = tmp_path / "poster.png"
    code = main([
        "render", "--no-background", "--url", "https://example.com", "--title", "Hello",
        "--theme", "minimal", "--position", "bottom-left", "--scale", "0.5", "-o", str(output),
    ])
    assert code == 0
    with Image.open(output) as img:
        assert img.size == (300, 400)
    assert "Done!" in capsys.readouterr().out


def test_render_with_local_background(tmp_path):
    background = tmp_path / "bg.jpg"
    Image.new("RGB", (90, 120), "#884422").save(background)
    output = tmp_path / "poster.jpg"
    code = main(["render", "--background", str(background), "--scale", "0.5", "-o", str(output)])
    assert code == 0
    with Image.open(output) as img:
        assert img.format == "JPEG"


def test_render_clamps_size(tmp_path, capsys):
    output = tmp_path / "poster.png"
    assert main(["render", "--no-background", "--size", "900", "--scale", "0.5", "-o", str(output)]) == 0
    assert "clamped to 400px" in capsys.readouterr().err


def test_render_invalid_color(tmp_path, capsys):
    code = main(["render", "--no-background", "--qr-color", "blue", "-o", str(tmp_path / "p.png")])
    assert code == 1
    assert "ERROR" in capsys.readouterr().err


def test_render_unsupported_extension(tmp_path, capsys):
    code = main(["render", "--no-background", "-o", str(tmp_path / "poster.gif")])
    assert code == 1
    assert "Unsupported" in capsys.readouterr().err


def test_render_generated_background(tmp_path, monkeypatch):
    fake = FakeArtClient(result=png_data_uri("#aa3300"))
    requested = {}

    def fake_get_client(api, **kwargs):
        requested["api"] = api
        requested.update(kwargs)
        return fake

    monkeypatch.setattr(api_client, "get_client", fake_get_client)
    output = tmp_path / "poster.png"
    code = main([
        "render", "--generate", "--prompt", "lava lamp", "--api", "replicate",
        "--scale", "0.5", "-o", str(output),
    ])
    assert code == 0
    assert output.exists()
    assert requested["api"] == "replicate"
    assert requested["spinner"] is True
    assert "lava lamp" in fake.prompts[0]


@pytest.mark.parametrize("fake, code", [(FailingArtClient(), 1), (EmptyArtClient(), 0)])
def test_render_generation_outcomes(tmp_path, monkeypatch, fake, code):
    monkeypatch.setattr(api_client, "get_client", lambda api, **kwargs: fake)
    output = tmp_path / "poster.png"
    assert main(["render", "--generate", "--scale", "0.5", "-o", str(output)]) == code
    assert output.exists() is (code == 0)


def test_render_missing_credentials(tmp_path, monkeypatch, capsys):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    assert main(["render", "--generate", "-o", str(tmp_path / "p.png")]) == 1
    assert "GEMINI_API_KEY" in capsys.readouterr().err


def test_render_keeps_existing_file_when_declined(tmp_path, monkeypatch):
    output = tmp_path / "poster.png"
    output.write_bytes(b"original")
    monkeypatch.setattr("builtins.input", lambda _: "n")
    assert main(["render", "--no-background", "-o", str(output)]) == 0
    assert output.read_bytes() == b"original"


def test_serve_passes_reload(monkeypatch):
    from qr_poster import web

    calls = []
    monkeypatch.setattr(web, "run", lambda **kwargs: calls.append(kwargs))
    assert main(["serve", "--port", "9001", "--api", "huggingface", "--reload"]) == 0
    assert calls == [{"host": "127.0.0.1", "port": 9001, "api": "huggingface", "reload": True}]


def test_serve_reload_defaults_off():
    assert create_parser().parse_args(["serve"]).reload is False
