#!/usr/bin/env python3
"""Interactive admin console for the dental clinic.

Usage:
    clinica-console            (or: python -m clinica_dental.console)

Commands:
    /doctores [texto]      - List doctors
    /servicios [texto]     - List services with their specialty
    /pacientes [texto]     - List patients
    /citas [YYYY-MM-DD|todas] - List appointments for a date
    /agendar               - Book an appointment step by step
    /atender <id>          - Mark an appointment as attended
    /cancelar <id>         - Cancel an appointment (asks for a reason)
    /reporte [exportar]    - Show (and optionally export) the report
    /ayuda                 - Show this help
    /salir                 - Exit
"""
import sys
from typing import Callable, Optional

from clinica_dental.appointments import AppointmentBoard, CancellationDialog
from clinica_dental.booking import BookingController, SlotView
from clinica_dental.config import ClientConfig, get_config
from clinica_dental.directory import DoctorDirectory, PatientDirectory, ServiceCatalog
from clinica_dental.errors import BookingValidationError
from clinica_dental.gateway import ClinicGateway
from clinica_dental.logging_config import get_logger, setup_structured_logging
from clinica_dental.reports import ReportFilters, ReportService, export_report

logger = get_logger(__name__)


# ANSI color codes
class Colors:
    BLUE = '\033[94m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    RESET = '\033[0m'
    BOLD = '\033[1m'


def print_colored(text: str, color: str = Colors.RESET):
    """Print colored text."""
    print(f"{color}{text}{Colors.RESET}")


def console_notifier(level: str, message: str) -> None:
    color = {"success": Colors.GREEN, "error": Colors.RED}.get(level, Colors.YELLOW)
    icon = {"success": "✅", "error": "❌"}.get(level, "ℹ️")
    print_colored(f"{icon} {message}", color)


def print_banner():
    print_colored("=" * 60, Colors.BLUE)
    print_colored("🦷 Clínica Dental - Consola de administración", Colors.BOLD)
    print_colored("=" * 60, Colors.BLUE)
    print_colored(__doc__.split("Commands:")[1].rstrip(), Colors.YELLOW)
    print()


class Console:
    """Command dispatcher over the clinic screens."""

    def __init__(
        self,
        gateway,
        config: ClientConfig,
        input_fn: Callable[[str], str] = input,
        notifier=console_notifier,
    ):
        self.config = config
        self.ask = input_fn
        self.booking = BookingController(gateway, notifier)
        self.board = AppointmentBoard(gateway, notifier)
        self.cancel_dialog = CancellationDialog(self.board)
        self.doctors = DoctorDirectory(gateway, notifier)
        self.services = ServiceCatalog(gateway, notifier)
        self.patients = PatientDirectory(gateway, notifier)
        self.reports = ReportService(gateway, config)

    def handle(self, line: str) -> bool:
        """Run one command line; returns False when the user wants to exit."""
        parts = line.strip().split(maxsplit=1)
        if not parts:
            return True
        command = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if command in ("/salir", "/quit"):
            print_colored("👋 ¡Hasta luego!", Colors.YELLOW)
            return False

        handlers = {
            "/doctores": self.list_doctors,
            "/servicios": self.list_services,
            "/pacientes": self.list_patients,
            "/citas": self.list_appointments,
            "/agendar": lambda _: self.book(),
            "/atender": self.attend,
            "/cancelar": self.cancel,
            "/reporte": self.report,
            "/ayuda": lambda _: print_banner(),
        }
        handler = handlers.get(command)
        if handler is None:
            print_colored(f"❓ Comando desconocido: {command} (usa /ayuda)", Colors.RED)
            return True
        handler(arg)
        return True

    # ------------------------------------------------------------ listings

    def list_doctors(self, term: str = ""):
        self.doctors.load()
        for d in self.doctors.search(term):
            state = "activo" if d.activo else "inactivo"
            hours = f"{d.horario_inicio or '?'}-{d.horario_fin or '?'}"
            print(f"  {d.id}  {d.nombre:<28} {d.especialidad:<20} {hours}  [{state}]")

    def list_services(self, term: str = ""):
        self.services.load()
        for s in self.services.search(term):
            print(f"  {s.id}  {s.nombre:<30} {s.especialidad:<20} {s.duracion} min  S/ {s.precio:.2f}")

    def list_patients(self, term: str = ""):
        self.patients.load()
        for p in self.patients.search(term):
            print(f"  {p.id}  {p.full_name:<30} {p.correo_electronico:<28} {p.numero_telefono}")

    def list_appointments(self, fecha: str = ""):
        if fecha == "todas":
            self.board.reload(fecha=None)
        elif fecha:
            self.board.reload(fecha=fecha)
        else:
            self.board.reload()

        if not self.board.appointments:
            print_colored("No hay citas.", Colors.YELLOW)
        for a in self.board.appointments:
            print(
                f"  {a.id}  {a.fecha} {a.hora}  {a.paciente_nombre:<24} "
                f"{a.doctor_nombre:<24} {a.servicio_nombre:<24} {a.estado.value}"
            )

    # ------------------------------------------------------------ booking

    def _pick(self, label: str, options):
        for i, (_, text) in enumerate(options, 1):
            print(f"  {i}. {text}")
        answer = self.ask(f"{label}: ").strip()
        if not answer.isdigit() or not 1 <= int(answer) <= len(options):
            return None
        return options[int(answer) - 1][0]

    def book(self) -> Optional[object]:
        """Walk the booking form field by field, then submit."""
        ctl = self.booking
        ctl.clear()
        ctl.load_reference_data()

        ctl.set_patient_name(self.ask("Nombre del paciente: "))

        doctor_id = self._pick("Doctor", [(d.id, f"{d.nombre} ({d.especialidad})") for d in ctl.doctors])
        if doctor_id is None:
            print_colored("Doctor no válido.", Colors.RED)
            return None
        ctl.select_doctor(doctor_id)

        try:
            ctl.select_date(self.ask("Fecha (YYYY-MM-DD): ").strip())
        except BookingValidationError as e:
            print_colored(str(e), Colors.RED)
            return None

        if ctl.slot_view == SlotView.EMPTY:
            print_colored("No hay horarios disponibles para esa fecha.", Colors.YELLOW)
            return None

        hora = self._pick("Horario", [(h, h) for h in ctl.form.slots or ()])
        if hora is None:
            print_colored("Horario no válido.", Colors.RED)
            return None
        ctl.select_slot(hora)

        servicio_id = self._pick("Servicio", [(s.id, f"{s.nombre} - S/ {s.precio:.2f}") for s in ctl.services])
        if servicio_id is None:
            print_colored("Servicio no válido.", Colors.RED)
            return None
        ctl.select_service(servicio_id)
        ctl.set_notes(self.ask("Notas (opcional): "))

        return ctl.submit()

    # ------------------------------------------------------------ status changes

    def _find(self, appointment_id: str):
        if not self.board.get(appointment_id):
            self.board.reload(fecha=None)
        appointment = self.board.get(appointment_id)
        if appointment is None:
            print_colored(f"Cita '{appointment_id}' no encontrada.", Colors.RED)
        return appointment

    def attend(self, appointment_id: str):
        if self._find(appointment_id):
            self.board.attend(appointment_id)

    def cancel(self, appointment_id: str):
        appointment = self._find(appointment_id)
        if appointment is None:
            return
        self.cancel_dialog.open(appointment)
        reason = self._pick("Motivo (Enter para omitir)", [(r, r) for r in self.cancel_dialog.reasons])
        self.cancel_dialog.choose_reason(reason or "")
        if self.ask("¿Confirmar cancelación? (s/n): ").strip().lower() != "s":
            self.cancel_dialog.close()
            return
        self.cancel_dialog.confirm()

    # ------------------------------------------------------------ reports

    def report(self, arg: str = ""):
        filters = ReportFilters()
        report = self.reports.build(filters)

        c = report.citas
        print_colored(
            f"Citas: {c.total}  atendidas: {c.atendidas}  canceladas: {c.canceladas}  "
            f"({c.porcentaje_atendidas}% atendidas)",
            Colors.BOLD,
        )
        for row in report.servicios:
            print(f"  {row.servicio:<30} {row.especializacion:<20} {row.cantidad:>4}  S/ {row.ingresos:.2f}")
        for row in report.mensuales:
            print(f"  {row.mes:<20} atendidas {row.atendidas:>4}  canceladas {row.canceladas:>4}  S/ {row.ingresos:.2f}")

        if arg == "exportar":
            path = export_report(report, filters, directory=self.config.export_dir)
            print_colored(f"✅ Reporte exportado: {path}", Colors.GREEN)


def main():
    """Main interactive loop."""
    config = get_config()
    setup_structured_logging(config.log_level)
    console = Console(ClinicGateway(config), config)

    print_banner()
    print_colored(f"Backend: {config.api_base_url}", Colors.YELLOW)
    print()

    while True:
        try:
            line = input("🦷 > ")
            if not line.strip():
                continue
            if not line.startswith("/"):
                print_colored("Los comandos empiezan con '/'. Usa /ayuda.", Colors.YELLOW)
                continue
            if not console.handle(line):
                break
        except (KeyboardInterrupt, EOFError):
            print_colored("\n👋 ¡Hasta luego!", Colors.YELLOW)
            break
        except Exception as e:
            logger.exception("console_command_failed")
            print_colored(f"❌ Error inesperado: {e}", Colors.RED)

    return 0


if __name__ == "__main__":
    sys.exit(main())
