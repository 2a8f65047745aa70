from jobhub.common.enums import ProgressStage

STAGE_TITLES: dict[ProgressStage, str] = {
    ProgressStage.PAYMENT_RECEIVED: "Payment Received",
    ProgressStage.MATERIALS_ORDERED: "Materials Ordered",
    ProgressStage.WORK_SCHEDULED: "Work Scheduled",
    ProgressStage.WORK_IN_PROGRESS: "Work in Progress",
    ProgressStage.WORK_COMPLETED: "Work Completed",
    ProgressStage.CUSTOMER_APPROVAL: "Awaiting Customer Approval",
    ProgressStage.JOB_CLOSED: "Job Closed",
}


def stage_rank(stage: ProgressStage | str | None) -> int:
    if stage is None:
        return -1
    return ProgressStage(stage).rank


def is_regression(stage: ProgressStage, current_stage: str | None) -> bool:
    return stage_rank(stage) < stage_rank(current_stage)


def advance(current_stage: str | None, stage: ProgressStage) -> ProgressStage:
    """Highest stage reached after recording ``stage``."""
    if current_stage is not None and stage_rank(current_stage) > stage.rank:
        return ProgressStage(current_stage)
    return stage


def completes_work(stage: ProgressStage) -> bool:
    return stage == ProgressStage.WORK_COMPLETED


def feedback_unlocked(current_stage: str | None) -> bool:
    return stage_rank(current_stage) >= ProgressStage.WORK_COMPLETED.rank
