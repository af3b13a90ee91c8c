"""
PDF rendering of commitment terms.

Everything printed comes from the term snapshot, never from live rows, so a
PDF rendered today matches the one rendered at signing time.
"""
from io import BytesIO
from textwrap import wrap

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from petsup.models.enums import TermKind
from petsup.services.validators import format_cpf, format_phone

LEFT = 50
TOP = A4[1] - 50
BOTTOM = 70
WRAP_WIDTH = 95

FOOTER = "Este documento foi gerado digitalmente pelo PetSup - Plataforma de Adoção de Pets"
VALIDITY = "Este documento foi assinado digitalmente e possui validade legal conforme a legislação vigente."

TITLES = {
    TermKind.ADOPTION: "TERMO DE COMPROMISSO DE ADOÇÃO",
    TermKind.COMPROMISE: "TERMO DE COMPROMISSO",
    TermKind.DONATION: "TERMO DE RESPONSABILIDADE DE DOAÇÃO",
}

ADOPTER_COMMITMENTS = [
    "Proporcionar cuidados veterinários adequados ao pet.",
    "Oferecer alimentação adequada e de qualidade.",
    "Providenciar abrigo seguro e confortável.",
    "Não abandonar, maltratar ou submeter o animal a maus-tratos.",
    "Entrar em contato com o doador antes de repassar a terceiros.",
    "Permitir visitas do doador mediante agendamento prévio.",
    "Informar mudanças de endereço ou contato.",
]

# Keyed by DonationTerm commitment flag
DONOR_COMMITMENTS = {
    "confirms_legal_guardian": "Confirmo que sou responsável legal pelos pets que cadastrar na plataforma.",
    "allows_visits": "Autorizo visitas de potenciais adotantes mediante agendamento prévio.",
    "accepts_follow_up": "Aceito acompanhamento pós-adoção para garantir o bem-estar dos animais.",
    "confirms_health_info": "Comprometo-me a fornecer informações verdadeiras sobre a saúde dos pets.",
    "allows_background_check": "Autorizo verificação de antecedentes dos potenciais adotantes.",
    "commits_to_contact": "Comprometo-me a manter contato durante todo o processo de adoção.",
}


def format_signed_at(signed_at) -> str:
    return signed_at.strftime("%d/%m/%Y %H:%M") if signed_at else ""


class _TermWriter:
    """Top-down text cursor over a reportlab canvas that breaks pages at the bottom margin."""

    def __init__(self, buffer: BytesIO, title: str):
        self.canvas = canvas.Canvas(buffer, pagesize=A4)
        self.canvas.setTitle(title)
        self.y = TOP

    def ensure_space(self, height: float) -> None:
        if self.y - height < BOTTOM:
            self.new_page()

    def new_page(self) -> None:
        self._draw_footer()
        self.canvas.showPage()
        self.y = TOP

    def centered(self, text: str, font: str = "Helvetica", size: int = 10, leading: int = 14) -> None:
        self.ensure_space(leading)
        self.canvas.setFont(font, size)
        self.canvas.drawCentredString(A4[0] / 2, self.y, text)
        self.y -= leading

    def heading(self, text: str) -> None:
        self.ensure_space(40)
        self.y -= 8
        self.canvas.setFont("Helvetica-Bold", 12)
        self.canvas.drawString(LEFT, self.y, text)
        self.y -= 16

    def line(self, text: str, font: str = "Helvetica", size: int = 10, leading: int = 13) -> None:
        for chunk in wrap(text, WRAP_WIDTH) or [""]:
            self.ensure_space(leading)
            self.canvas.setFont(font, size)
            self.canvas.drawString(LEFT, self.y, chunk)
            self.y -= leading

    def field(self, label: str, value) -> None:
        self.line(f"{label}: {value if value not in (None, '') else 'Não informado'}")

    def finish(self) -> None:
        self._draw_footer()
        self.canvas.showPage()
        self.canvas.save()

    def _draw_footer(self) -> None:
        self.canvas.setFont("Helvetica", 8)
        self.canvas.drawCentredString(A4[0] / 2, 30, FOOTER)


def render_term_pdf(kind: TermKind, term) -> bytes:
    """Render a term of the given kind to PDF bytes."""
    buffer = BytesIO()
    writer = _TermWriter(buffer, TITLES[kind])

    writer.centered(TITLES[kind], font="Helvetica-Bold", size=16, leading=24)
    writer.centered(f"Documento ID: {term.id} | Data: {format_signed_at(term.signed_at)}", leading=20)

    if kind == TermKind.DONATION:
        _donation_body(writer, term)
    else:
        _pet_transfer_body(writer, term)

    _observations(writer, term.observations)
    _signature_block(writer, term)
    writer.finish()
    return buffer.getvalue()


def _pet_transfer_body(writer: _TermWriter, term) -> None:
    writer.heading("DADOS DO PET:")
    writer.line(f"Nome: {term.pet_name} | Espécie: {term.pet_species_name}")
    writer.line(f"Raça: {term.pet_breed_name} | Sexo: {term.pet_sex_name} | Idade: {term.pet_age} anos")
    if term.pet_donation_reason:
        writer.line(f"Motivo da Doação: {term.pet_donation_reason}")

    writer.heading("DADOS DO DOADOR:")
    writer.field("Nome", term.donor_name)
    writer.field("Email", term.donor_email)
    writer.field("Telefone", format_phone(term.donor_phone))
    writer.field("Localização", term.donor_location())

    writer.heading("DADOS DO ADOTANTE:")
    writer.field("Nome", term.adopter_name)
    writer.field("Email", term.adopter_email)
    writer.field("Telefone", format_phone(term.adopter_phone))
    writer.field("Localização", term.adopter_location())
    if term.adopter_document:
        writer.field("CPF", format_cpf(term.adopter_document))

    writer.heading("COMPROMISSOS DO ADOTANTE:")
    for index, commitment in enumerate(ADOPTER_COMMITMENTS, start=1):
        writer.line(f"{index}. {commitment}", size=9, leading=12)


def _donation_body(writer: _TermWriter, term) -> None:
    writer.heading("DADOS DO DOADOR:")
    writer.field("Nome Completo", term.donor_name)
    writer.field("Email", term.donor_email)
    writer.field("Telefone", format_phone(term.donor_phone))
    writer.field("CPF", format_cpf(term.donor_document))
    writer.field("Localização", term.donor_location())

    writer.heading("MOTIVO DA DOAÇÃO:")
    writer.line(term.donation_reason)
    if term.adoption_conditions:
        writer.heading("CONDIÇÕES PARA ADOÇÃO:")
        writer.line(term.adoption_conditions)

    writer.heading("COMPROMISSOS E RESPONSABILIDADES:")
    for flag, commitment in DONOR_COMMITMENTS.items():
        mark = "[X]" if getattr(term, flag) else "[  ]"
        writer.line(f"{mark} {commitment}", size=9, leading=12)


def _observations(writer: _TermWriter, observations) -> None:
    if not observations:
        return
    writer.heading("OBSERVAÇÕES:")
    for paragraph in observations.splitlines():
        writer.line(paragraph)


def _signature_block(writer: _TermWriter, term) -> None:
    writer.ensure_space(110)
    writer.heading("ASSINATURA DIGITAL:")
    writer.field("Assinado digitalmente por", term.signature_text)
    writer.field("Data e hora", format_signed_at(term.signed_at))
    writer.field("Hash do documento", term.document_hash)
    writer.y -= 16
    writer.line(VALIDITY, font="Helvetica-Oblique", size=9)
