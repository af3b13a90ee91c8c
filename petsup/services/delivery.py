"""
Term and account emails.

Each party of a pet-transfer term gets its own message: the donor sees the
adopter's full contact and the adopter sees the donor's. Both get the same
PDF attachment.
"""
import logging
import re
from html import escape
from typing import List

from petsup.models.enums import TermKind
from petsup.services.documents import format_signed_at
from petsup.services.mailer import Attachment, Mailer
from petsup.services.terms import TermService
from petsup.services.validators import format_cpf, format_phone

logger = logging.getLogger(__name__)

_STYLE = """
  body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
  .container { max-width: 600px; margin: 0 auto; padding: 20px; }
  .header { background: #4682B4; color: white; padding: 20px; text-align: center; border-radius: 8px 8px 0 0; }
  .content { background: #f9f9f9; padding: 30px; border-radius: 0 0 8px 8px; }
  .box { background: white; padding: 15px; border-radius: 8px; margin: 20px 0; border-left: 4px solid #4682B4; }
  .code { font-size: 32px; letter-spacing: 8px; font-weight: bold; text-align: center; }
  .footer { text-align: center; margin-top: 30px; font-size: 12px; color: #666; }
"""


def _page(title: str, body: str, footer: str = "") -> str:
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><style>{_STYLE}</style></head>
<body>
  <div class="container">
    <div class="header"><h1>{title}</h1></div>
    <div class="content">{body}</div>
    <div class="footer">
      <p>Este email foi enviado automaticamente pelo sistema PetSup</p>
      {footer}
    </div>
  </div>
</body>
</html>"""


def _rows(pairs) -> str:
    return "".join(
        f"<p><strong>{escape(label)}:</strong> {escape(str(value)) if value else 'Não informado'}</p>"
        for label, value in pairs
    )


def pdf_filename(kind: TermKind, term) -> str:
    label = term.donor_name if kind == TermKind.DONATION else term.pet_name
    slug = re.sub(r"\W+", "_", label or "").strip("_") or "termo"
    prefix = {
        TermKind.ADOPTION: "termo_adocao",
        TermKind.COMPROMISE: "termo_compromisso",
        TermKind.DONATION: "termo_doacao",
    }[kind]
    return f"{prefix}_{slug}_{term.id}.pdf"


def _pet_rows(term) -> str:
    return _rows([
        ("Nome", term.pet_name),
        ("Espécie", term.pet_species_name),
        ("Raça", term.pet_breed_name),
        ("Sexo", term.pet_sex_name),
        ("Idade", f"{term.pet_age} anos"),
        ("Data da Adoção", format_signed_at(term.signed_at)),
        ("ID do Documento", f"#{term.id}"),
    ])


def _observations(term) -> str:
    if not term.observations:
        return ""
    return f'<div class="box"><h3>Observações:</h3><p>{escape(term.observations)}</p></div>'


def donor_email_html(term) -> str:
    """Message to the donor; shows the adopter's contact."""
    adopter = _rows([
        ("Nome", term.adopter_name),
        ("Email", term.adopter_email),
        ("Telefone", format_phone(term.adopter_phone)),
        ("Localização", term.adopter_location()),
        ("CPF", format_cpf(term.adopter_document)),
        ("Assinatura Digital", term.signature_text),
    ])
    body = f"""
      <p>Olá <strong>{escape(term.donor_name)}</strong>,</p>
      <p>O termo de compromisso de <strong>{escape(term.pet_name)}</strong> foi assinado e está anexado a este email.</p>
      <div class="box"><h3>Informações do Pet:</h3>{_pet_rows(term)}</div>
      <div class="box"><h3>Informações do Adotante:</h3>{adopter}</div>
      {_observations(term)}
      <p>Guarde este documento como comprovante da doação responsável.</p>
      <p>Com gratidão,<br><strong>Equipe PetSup</strong></p>
    """
    return _page(
        f"Parabéns, {escape(term.donor_name)}!",
        body,
        f"<p>Hash do documento: {escape(term.document_hash or '')}</p>",
    )


def adopter_email_html(term) -> str:
    """Message to the adopter; shows the donor's contact."""
    donor = _rows([
        ("Nome", term.donor_name),
        ("Email", term.donor_email),
        ("Telefone", format_phone(term.donor_phone)),
        ("Localização", term.donor_location()),
    ])
    body = f"""
      <p>Olá <strong>{escape(term.adopter_name)}</strong>,</p>
      <p>Seu termo de compromisso para <strong>{escape(term.pet_name)}</strong> foi gerado com sucesso e está anexado a este email.</p>
      <div class="box"><h3>Seu Novo Pet:</h3>{_pet_rows(term)}</div>
      <div class="box"><h3>Informações do Doador:</h3>{donor}
        <p><em>Mantenha contato conforme acordado no termo de compromisso</em></p></div>
      {_observations(term)}
      <p><strong>Guarde este documento em local seguro.</strong></p>
      <p>Com carinho,<br><strong>Equipe PetSup</strong></p>
    """
    return _page(
        f"Bem-vindo à família, {escape(term.adopter_name)}!",
        body,
        f"<p>Hash do documento: {escape(term.document_hash or '')}</p>",
    )


def donation_email_html(term) -> str:
    body = f"""
      <p>Olá <strong>{escape(term.donor_name)}</strong>,</p>
      <p>Seu termo de responsabilidade de doação foi registrado. A partir de agora você pode cadastrar pets para adoção.</p>
      <div class="box"><h3>Dados do Termo:</h3>{_rows([
          ("ID do Documento", f"#{term.id}"),
          ("Data", format_signed_at(term.signed_at)),
          ("Motivo da Doação", term.donation_reason),
          ("Assinatura Digital", term.signature_text),
      ])}</div>
      <p>O documento completo está anexado em PDF.</p>
      <p>Atenciosamente,<br><strong>Equipe PetSup</strong></p>
    """
    return _page(
        "Termo de Responsabilidade de Doação",
        body,
        f"<p>Hash do documento: {escape(term.document_hash or '')}</p>",
    )


def deliver_pet_transfer_term(mailer: Mailer, kind: TermKind, term, pdf: bytes) -> List[str]:
    """
    Email an adoption or compromise term. Adoption terms go to both parties,
    compromise terms to the adopter only. Returns the addresses actually sent to.
    """
    attachment = Attachment(pdf_filename(kind, term), pdf, "pdf")
    messages = []
    if kind == TermKind.ADOPTION:
        messages.append((
            term.donor_email,
            f"{term.pet_name} foi adotado! - Termo de Compromisso",
            donor_email_html(term),
        ))
    messages.append((
        term.adopter_email,
        f"Termo de Compromisso - Adoção de {term.pet_name}",
        adopter_email_html(term),
    ))

    sent = []
    for to, subject, html in messages:
        if to and mailer.send(to, subject, html, [attachment]):
            sent.append(to)
    return sent


def deliver_donation_term(mailer: Mailer, term, pdf: bytes) -> List[str]:
    attachment = Attachment(pdf_filename(TermKind.DONATION, term), pdf, "pdf")
    subject = f"Termo de Responsabilidade de Doação - {term.donor_name}"
    if mailer.send(term.donor_email, subject, donation_email_html(term), [attachment]):
        return [term.donor_email]
    return []


def deliver_in_background(mailer: Mailer, kind: TermKind, term, pdf: bytes, session_factory) -> None:
    """
    Background-task entry point, run after the response with a session of its own.

    Failures are logged only; the term is already committed and stays valid
    without the email.
    """
    try:
        if kind == TermKind.DONATION:
            sent = deliver_donation_term(mailer, term, pdf)
        else:
            sent = deliver_pet_transfer_term(mailer, kind, term, pdf)
    except Exception:
        logger.exception("failed to email %s term %s", kind.value, term.id)
        return
    if not sent:
        return

    logger.info("%s term %s emailed to %s", kind.value, term.id, sent)
    db = session_factory()
    try:
        service = TermService(db)
        stored = service.get_term(kind, term.id)
        if kind == TermKind.DONATION:
            service.mark_pdf_sent(stored)
        service.record_emailed(stored, sent)
    except Exception:
        logger.exception("failed to record delivery of %s term %s", kind.value, term.id)
    finally:
        db.close()


def send_recovery_code(mailer: Mailer, to: str, name: str, code: str, ttl_minutes: int) -> bool:
    body = f"""
      <p>Olá <strong>{escape(name)}</strong>,</p>
      <p>Recebemos uma solicitação para redefinir a senha da sua conta. Use o código abaixo:</p>
      <div class="box"><p class="code">{escape(code)}</p></div>
      <p>O código expira em {ttl_minutes} minutos.</p>
      <p>Se você não solicitou esta alteração, pode ignorar este email com segurança.</p>
    """
    return mailer.send(to, "Recuperação de Senha - PetSup", _page("Recuperação de Senha", body))
