"""
Output display utilities for multi-logarithmic computations.

Provides interactive Jupyter widgets for viewing modules and lists of
differential forms whose generator matrices are too large to read
comfortably in a notebook cell.
"""

import re
import warnings
from typing import List, Optional, Sequence, Union

import sympy as sp

from differential_forms import DifferentialForm
from module_groebner import Module

try:
    import ipywidgets as widgets
    from IPython.display import display, Latex
    WIDGETS_AVAILABLE = True
except ImportError:
    WIDGETS_AVAILABLE = False
    warnings.warn(
        "ipywidgets or IPython not available. Install with: pip install ipywidgets",
        ImportWarning
    )


# Matrices with more nonzero entries than this are rendered on demand only
LAZY_ENTRY_THRESHOLD = 400


def _sanitize_filename(text: str) -> str:
    # Keep only alphanumerics, underscore, hyphen, dot
    sanitized = re.sub(r"[^A-Za-z0-9._-]", "_", text)
    sanitized = re.sub(r"_+", "_", sanitized).strip("._-")
    return sanitized or "module"


class ModuleWidget:
    """
    Interactive widget for a Module or a list of DifferentialForm.

    Displays a summary (rank, number of generators, generator degrees) with
    expandable sections for:
    - Generators one by one (first N)
    - Full generator matrix in LaTeX
    - Plain string representation

    Parameters
    ----------
    result : Module or list of DifferentialForm
        Output of omegalog / derlog
    name : str, optional
        Label shown in the summary (e.g., "Omega^2(log C)")
    max_generators_display : int, optional
        Number of generators listed in the generator section (default: 10)

    Examples
    --------
    >>> M = computer.omegalog(2, IX)
    >>> widget = ModuleWidget(M, name="Omega^2(log X)")
    >>> widget.display()
    >>> widget.export_to_file("omega2.txt")
    """

    def __init__(
        self,
        result: Union[Module, Sequence[DifferentialForm]],
        name: str = "Module",
        max_generators_display: int = 10
    ):
        if not WIDGETS_AVAILABLE:
            raise ImportError(
                "ipywidgets and IPython required for ModuleWidget. "
                "Install with: pip install ipywidgets"
            )

        if isinstance(result, Module):
            self.module = result
            self.forms: Optional[List[DifferentialForm]] = None
        else:
            self.module = None
            self.forms = list(result)
            if not all(isinstance(w, DifferentialForm) for w in self.forms):
                raise TypeError("Expected a Module or a list of DifferentialForm")

        self.name = name
        self.max_generators_display = max_generators_display
        self._latex_cache: Optional[str] = None

        self._compute_metadata()
        self._build_widget()

    def _compute_metadata(self):
        """Summary data: kind, rank, generator count and degrees."""
        if self.module is not None:
            self.kind = "Module"
            self.rank = self.module.rank
            self.generator_count = self.module.ncols
            self.degrees = [self.module.degree(g) for g in self.module.generators]
            self.entry_count = sum(1 for g in self.module.generators for p in g if p)
        else:
            self.kind = "Differential forms"
            self.rank = self.forms[0].degree if self.forms else 0
            self.generator_count = len(self.forms)
            self.degrees = [
                max((sum(m) for c in w.coefficients().values() for m in c.itermonoms()),
                    default=-1)
                for w in self.forms
            ]
            self.entry_count = sum(len(w.coefficients()) for w in self.forms)

    def generator_exprs(self) -> List[sp.Basic]:
        """One SymPy object per generator (column vector or form)."""
        if self.module is not None:
            return [sp.Matrix([p.as_expr() for p in g]) for g in self.module.generators]
        return [w.as_expr() for w in self.forms]

    def get_latex(self, truncate: Optional[int] = None) -> str:
        """
        LaTeX of the generator matrix, or of the form list.

        Parameters
        ----------
        truncate : int, optional
            If provided, truncate to this many characters
        """
        if self._latex_cache is None:
            if self.module is not None:
                self._latex_cache = sp.latex(self.module.to_matrix())
            else:
                self._latex_cache = r",\quad ".join(sp.latex(e) for e in self.generator_exprs())
        latex = self._latex_cache
        if truncate and len(latex) > truncate:
            return latex[:truncate] + r" \ldots"
        return latex

    def _summary_html(self) -> str:
        size_label = "Rank" if self.module is not None else "Form degree"
        degrees = ", ".join(str(d) for d in self.degrees[:20])
        if len(self.degrees) > 20:
            degrees += ", ..."
        return f"""
        <div style="border: 2px solid #4CAF50; padding: 15px; border-radius: 5px; background-color: #f9f9f9; margin-bottom: 10px;">
            <h3 style="margin-top: 0; color: #4CAF50;">{self.name}</h3>
            <table style="width: 100%; border-collapse: collapse;">
                <tr><td style="padding: 5px;"><b>Type:</b></td><td style="padding: 5px;">{self.kind}</td></tr>
                <tr><td style="padding: 5px;"><b>{size_label}:</b></td><td style="padding: 5px;">{self.rank}</td></tr>
                <tr><td style="padding: 5px;"><b>Generators:</b></td><td style="padding: 5px;">{self.generator_count}</td></tr>
                <tr><td style="padding: 5px;"><b>Degrees:</b></td><td style="padding: 5px;">{degrees or "-"}</td></tr>
                <tr><td style="padding: 5px;"><b>Nonzero entries:</b></td><td style="padding: 5px;">{self.entry_count:,}</td></tr>
            </table>
        </div>
        """

    def _build_widget(self):
        """Build the interactive widget components."""
        self.summary_widget = widgets.HTML(value=self._summary_html())
        self.accordion = widgets.Accordion()

        # Section 1: first generators
        exprs = self.generator_exprs()[:self.max_generators_display]
        if exprs:
            items = "".join(
                f"<div style='padding: 5px;'>$$g_{{{i}}} = {sp.latex(e)}$$</div>"
                for i, e in enumerate(exprs, 1)
            )
            if self.generator_count > len(exprs):
                items += f"<div style='padding: 5px;'>... ({self.generator_count - len(exprs)} more)</div>"
            generators_widget = widgets.HTML(value=items)
        else:
            generators_widget = widgets.HTML(value="<div style='padding: 10px;'>No generators (zero module)</div>")

        # Section 2: full matrix, lazy when large
        if self.entry_count > LAZY_ENTRY_THRESHOLD:
            matrix_output = widgets.Output()
            with matrix_output:
                print(f"Matrix has {self.entry_count:,} nonzero entries. Click to render.")
            render_button = widgets.Button(description="Render Anyway", button_style='warning')

            def on_render_click(b):
                with matrix_output:
                    matrix_output.clear_output()
                    display(Latex(f"$${self.get_latex()}$$"))

            render_button.on_click(on_render_click)
            matrix_section = widgets.VBox([matrix_output, render_button])
        else:
            matrix_section = widgets.HTML(
                value=f"<div style='padding: 10px; overflow-x: auto;'>$${self.get_latex()}$$</div>"
            )

        # Section 3: string representation
        str_section = widgets.Textarea(
            value=self.to_text(),
            layout=widgets.Layout(width='100%', height='300px'),
            disabled=True,
        )

        self.accordion.children = [generators_widget, matrix_section, str_section]
        self.accordion.set_title(0, f'Generators ({self.generator_count})')
        self.accordion.set_title(1, 'Generator Matrix' if self.module is not None else 'Forms')
        self.accordion.set_title(2, 'String Representation')
        self.accordion.selected_index = None

        self.export_button = widgets.Button(
            description='Export to File',
            button_style='success',
            tooltip='Export generators to file'
        )
        self.export_output = widgets.Output()

        def on_export_click(b):
            with self.export_output:
                self.export_output.clear_output()
                try:
                    print(f"Exported to: {self.export_to_file()}")
                except OSError as e:
                    print(f"Export failed: {e}")

        self.export_button.on_click(on_export_click)

        self.container = widgets.VBox([
            self.summary_widget,
            self.accordion,
            widgets.HBox([self.export_button]),
            self.export_output
        ])

    def to_text(self) -> str:
        """One generator per line."""
        if self.module is not None:
            return "\n".join(
                "[" + ", ".join(str(p.as_expr()) for p in g) + "]"
                for g in self.module.generators
            )
        return "\n".join(str(w) for w in self.forms)

    def display(self):
        """Display the widget in the notebook."""
        display(self.container)

    def _repr_html_(self):
        self.display()
        return ""

    def export_to_file(self, filename: Optional[str] = None) -> str:
        """
        Export summary, LaTeX and generators to a text file.

        Returns
        -------
        str
            The filename that was written
        """
        if filename is None:
            filename = f"{_sanitize_filename(self.name)}.txt"
        else:
            base = _sanitize_filename(filename)
            filename = base if base.endswith('.txt') else f"{base}.txt"

        with open(filename, 'w', encoding='utf-8') as f:
            f.write(f"Name: {self.name}\n")
            f.write(f"Type: {self.kind}\n")
            f.write(f"Rank: {self.rank}\n")
            f.write(f"Generators: {self.generator_count}\n")
            f.write(f"Degrees: {self.degrees}\n")
            f.write(f"\n{'='*80}\n")
            f.write(f"LaTeX:\n{self.get_latex()}\n")
            f.write(f"\n{'='*80}\n")
            f.write(f"Generators:\n{self.to_text()}\n")
        return filename


def create_module_widget(
    result: Union[Module, Sequence[DifferentialForm]],
    name: str = "Module",
    **kwargs
) -> ModuleWidget:
    """Convenience function to create a ModuleWidget."""
    return ModuleWidget(result, name=name, **kwargs)
