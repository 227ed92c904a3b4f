from __future__ import annotations

import pytest

from component_engine.errors import ComponentParseError
from component_engine.models import UploadedFile
from component_engine.services.folder_parser import is_component_file, parse_uploaded_folder


def test_component_file_filter_skips_tests_and_entry_points() -> None:
    assert is_component_file("Hero.tsx")
    assert is_component_file("Card.jsx")
    assert not is_component_file("Hero.test.tsx")
    assert not is_component_file("Hero.spec.jsx")
    assert not is_component_file("App.tsx")
    assert not is_component_file("main.jsx")
    assert not is_component_file("Hero.ts")


def test_static_upload_is_used_verbatim() -> None:
    files = [
        UploadedFile(path="footer/index.html", content="<footer>{{copyright}}</footer>"),
        UploadedFile(path="footer/style.css", content="footer { padding: 2rem; }"),
        UploadedFile(path="footer/config.json", content='{"name": "Site Footer", "category": "footer"}'),
    ]

    component = parse_uploaded_folder(files)

    assert component.source_kind == "static"
    assert component.name == "Site Footer"
    assert component.category == "footer"
    assert component.html == "<footer>{{copyright}}</footer>"
    assert component.variables == {"copyright": "Copyright"}


def test_react_upload_prefers_hero_and_joins_all_stylesheets() -> None:
    files = [
        UploadedFile(path="site/src/App.tsx", content="export default function App() { return (<Hero />); }"),
        UploadedFile(path="site/src/main.tsx", content="createRoot(root).render(<App />);"),
        UploadedFile(path="site/src/components/Card.tsx", content="export const Card = () => null;"),
        UploadedFile(
            path="site/src/components/Hero.tsx",
            content=(
                "export function Hero({ title, subtitle }) {\n"
                "  return (\n    <section className=\"hero\"><h1>{title}</h1><p>{subtitle}</p></section>\n  );\n}\n"
            ),
        ),
        UploadedFile(path="site/src/components/Hero.test.tsx", content="it('renders', () => {});"),
        UploadedFile(path="site/src/index.css", content="body { margin: 0; }"),
        UploadedFile(path="site/src/styles/theme.css", content=".hero { color: red; }"),
    ]

    component = parse_uploaded_folder(files)

    assert component.source_kind == "framework"
    assert component.name == "Hero"
    assert component.category == "hero"
    assert component.description == "React component: Hero"
    assert "<h1>{{title}}</h1>" in component.html
    assert component.css == "body { margin: 0; }\n\n.hero { color: red; }"
    assert component.variables == {"title": "Title", "subtitle": "Subtitle"}
    assert component.script.startswith("export function Hero")


def test_react_upload_falls_back_to_index_then_first_component() -> None:
    index_first = parse_uploaded_folder(
        [
            UploadedFile(path="Card.jsx", content="export const Card = () => null;"),
            UploadedFile(path="index.jsx", content="export const Index = () => null;"),
        ]
    )
    first_only = parse_uploaded_folder(
        [
            UploadedFile(path="Card.jsx", content="export const Card = () => null;"),
            UploadedFile(path="Badge.jsx", content="export const Badge = () => null;"),
        ]
    )

    assert index_first.name == "index"
    assert first_only.name == "Card"
    assert first_only.css == ""


def test_upload_with_only_stylesheets_is_rejected() -> None:
    with pytest.raises(ComponentParseError, match="No React component files"):
        parse_uploaded_folder([UploadedFile(path="theme.css", content="body {}")])


def test_upload_without_anything_usable_is_rejected() -> None:
    with pytest.raises(ComponentParseError, match="No component or CSS files found"):
        parse_uploaded_folder([UploadedFile(path="README.md", content="# readme")])


CAROUSEL_SOURCE = """const slides = [
  { id: 1, title: 'Build faster', subtitle: "Ship today", image: '/hero.png' },
  { id: 2, title: 'Scale later', subtitle: 'Grow tomorrow' },
];
const Component = "Carousel";
const ctaLabel = 'Start free';

export default function Hero() {
  return (
    <section className="carousel"><h1>{slides[0].title}</h1><a>{ctaLabel}</a></section>
  );
}
"""


def test_react_upload_seeds_variables_from_first_slide_and_constants() -> None:
    component = parse_uploaded_folder([UploadedFile(path="Hero.tsx", content=CAROUSEL_SOURCE)])

    assert component.variables == {
        "title": "Build faster",
        "subtitle": "Ship today",
        "image": "/hero.png",
        "ctaLabel": "Start free",
    }
