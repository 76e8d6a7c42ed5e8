from rest_framework.routers import DefaultRouter

from .views import (
    CommissionViewSet,
    EventViewSet,
    FunnelViewSet,
    HotmartSyncLogViewSet,
    InstallmentViewSet,
    MentoringProcessViewSet,
    MentoringStageViewSet,
    MentoringTaskViewSet,
    NotificationViewSet,
    OKRCycleViewSet,
    OKRKeyResultViewSet,
    OKRObjectiveViewSet,
    PDIAccessViewSet,
    PDILessonViewSet,
    PDIViewSet,
    ProductViewSet,
    ReportViewSet,
    SaleViewSet,
    SalesImportLogViewSet,
    SDRAssignmentViewSet,
    SDRCommissionViewSet,
    SocialPostViewSet,
    SponsorViewSet,
    SubtaskViewSet,
    TaskCommentViewSet,
    TaskViewSet,
    TicketViewSet,
    UserViewSet,
)

router = DefaultRouter()
router.register("usuarios", UserViewSet, basename="usuario")
router.register("notificacoes", NotificationViewSet, basename="notificacao")
router.register("produtos", ProductViewSet, basename="produto")
router.register("vendas", SaleViewSet, basename="venda")
router.register("parcelas", InstallmentViewSet, basename="parcela")
router.register("comissoes", CommissionViewSet, basename="comissao")
router.register("sdr", SDRAssignmentViewSet, basename="sdr")
router.register("comissoes-sdr", SDRCommissionViewSet, basename="comissao_sdr")
router.register("importacoes", SalesImportLogViewSet, basename="importacao")
router.register("logs-hotmart", HotmartSyncLogViewSet, basename="log_hotmart")
router.register("tickets", TicketViewSet, basename="ticket")
router.register("tarefas", TaskViewSet, basename="tarefa")
router.register("subtarefas", SubtaskViewSet, basename="subtarefa")
router.register("comentarios-tarefa", TaskCommentViewSet, basename="comentario_tarefa")
router.register("ciclos-okr", OKRCycleViewSet, basename="ciclo_okr")
router.register("objetivos-okr", OKRObjectiveViewSet, basename="objetivo_okr")
router.register("resultados-chave", OKRKeyResultViewSet, basename="resultado_chave")
router.register("mentorias", MentoringProcessViewSet, basename="mentoria")
router.register("etapas-mentoria", MentoringStageViewSet, basename="etapa_mentoria")
router.register("tarefas-mentoria", MentoringTaskViewSet, basename="tarefa_mentoria")
router.register("pdis", PDIViewSet, basename="pdi")
router.register("aulas-pdi", PDILessonViewSet, basename="aula_pdi")
router.register("acessos-pdi", PDIAccessViewSet, basename="acesso_pdi")
router.register("eventos", EventViewSet, basename="evento")
router.register("patrocinadores", SponsorViewSet, basename="patrocinador")
router.register("posts", SocialPostViewSet, basename="post")
router.register("funis", FunnelViewSet, basename="funil")
router.register("relatorios", ReportViewSet, basename="relatorio")

urlpatterns = router.urls
