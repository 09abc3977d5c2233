from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .cli import build_argparser, update_dataclass_from_namespace
from .cluster.kmeans import ClusteringError, cluster_by_kmeans, features_from_values
from .debug.visuals import save_label_overlay, save_match_overlay
from .io.pgm import PgmFormatError, read_image, write_image
from .match.template import find_nearest_region, find_similar_region
from .segment.labeling import label_all
from .segment.regions import extract_region, format_props_table, get_region_props
from .segment.threshold import adjust_contrast, binarize, find_min_max, find_threshold
from .transform.filters import (
    cutout_template, dilate, erode, invert_brightness, mark_template_region, pixelize, smooth_with_median,
)
from .transform.resample import affine, deg_to_rad, rotate, scale
from .utils.config import KMEANS, MATCH, KMeansConfig, LabelingConfig, MatchConfig, RegionConfig
from .utils.logger import get_logger, init_logger
from .utils.reporting import build_run_report, plot_histogram, save_json, save_label_map
from .utils.types import AffineArgs, AppConfig, Grid, RunSummary, Status, merge_config_from_app


def _record(summary: RunSummary, stage: str, status: Status, reason: str = '') -> bool:
    """단계 결과 기록. 파이프라인을 계속 진행해도 되면 True.

    NO_OP 는 정보성 결과이므로 계속 진행, 그 외 실패는 중단.
    """
    summary.stages.append((stage, status.value))
    logger = get_logger()
    if status in (Status.OK, Status.NO_OP):
        logger.info('[STAGE] %s: %s', stage, status.value)
        return True
    logger.error('[FAIL] %s: %s (%s)', stage, status.value, reason)
    summary.failed = True
    return False


def _write_output(path: Path, grid: Grid, summary: RunSummary) -> bool:
    try:
        write_image(path, grid)
    except OSError as e:
        get_logger().error('[FAIL] error in writing image: %s', e)
        summary.failed = True
        return False
    return True


def _apply_geometry(img: Grid, config: AppConfig, summary: RunSummary) -> Optional[Grid]:
    if config.scale is not None:
        hf, wf = config.scale
        res = scale(img, float(hf), float(wf))
        if not _record(summary, 'scale', res.status, res.reason):
            return None
        img = res.grid

    if config.rotate_deg is not None:
        if config.center is not None:
            cy, cx = config.center
        else:
            cy, cx = (img.height - 1) / 2.0, (img.width - 1) / 2.0
        res = rotate(img, deg_to_rad(float(config.rotate_deg)), float(cy), float(cx))
        if not _record(summary, 'rotate', res.status, res.reason):
            return None
        img = res.grid

    if config.affine is not None:
        res = affine(img, AffineArgs(*[float(v) for v in config.affine]))
        if not _record(summary, 'affine', res.status, res.reason):
            return None
        img = res.grid
    return img


def run(argv=None) -> RunSummary:
    ap = build_argparser()
    args = ap.parse_args(argv)

    # AppConfig 생성 및 CLI 인자로 업데이트
    config = AppConfig(
        src=Path(args.src),
        dst=Path(args.dst),
        debug_dir=Path(args.dst).parent / 'report'
    )
    update_dataclass_from_namespace(config, args)
    if config.template is not None:
        config.template = Path(config.template)
    if config.template_out is not None:
        config.template_out = Path(config.template_out)
    # 후속 단계가 요구하는 선행 단계 활성화
    if config.extract or config.n_clusters:
        config.label = True
    if config.label or config.erode or config.dilate:
        config.binarize = True

    # 로거 초기화 (파일: debug_dir/pgmproc.log, 콘솔: INFO 이상)
    init_logger(config.debug_dir / 'pgmproc.log',
                console_level=logging.DEBUG if config.verbose else logging.INFO)
    logger = get_logger()
    logger.info('[ENTER] main.run')

    LABEL_CONFIG: LabelingConfig = merge_config_from_app(config, LabelingConfig())
    REGION_CONFIG: RegionConfig = merge_config_from_app(config, RegionConfig())
    KMEANS_CONFIG: KMeansConfig = merge_config_from_app(config, KMEANS)
    MATCH_CONFIG: MatchConfig = merge_config_from_app(config, MATCH)

    if config.verbose:
        logger.info('[CONFIG] %s', {
            'src': str(config.src),
            'dst': str(config.dst),
            'scale': config.scale,
            'rotate_deg': config.rotate_deg,
            'affine': config.affine,
            'binarize': config.binarize,
            'threshold': config.threshold,
            'queue_capacity': LABEL_CONFIG.queue_capacity,
            'min_area_divisor': REGION_CONFIG.min_area_divisor,
            'n_clusters': config.n_clusters,
            'template': str(config.template) if config.template else None,
            'match': MATCH_CONFIG.match,
        })

    summary = RunSummary()
    try:
        img = read_image(config.src)
    except (OSError, PgmFormatError) as e:
        logger.error('[FAIL] error in reading image: %s', e)
        summary.failed = True
        return summary

    # 1. 필터 -----------------------------------------------------------
    if config.median:
        img = smooth_with_median(img)
        _record(summary, 'median', Status.OK)
    if config.pixelize:
        img = pixelize(img, int(config.pixelize))
        _record(summary, 'pixelize', Status.OK)
    if config.invert:
        img = invert_brightness(img)
        _record(summary, 'invert', Status.OK)
    if config.contrast:
        _record(summary, 'contrast', adjust_contrast(img, find_min_max(img)))

    # 2. 기하 변환 -------------------------------------------------------
    img = _apply_geometry(img, config, summary)
    if img is None:
        return summary

    out = img
    label_map: Optional[Grid] = None

    # 3. 이진화 / labeling -------------------------------------------------
    if config.binarize:
        th = config.threshold if config.threshold is not None else find_threshold(img)
        summary.threshold = int(th)
        logger.info('[INFO] threshold: %d', th)
        if config.save_debug:
            plot_histogram(img, config.debug_dir / 'histogram.png', th)
        out = img.copy()
        binarize(out, th)
        _record(summary, 'binarize', Status.OK)
        if config.erode:
            out = erode(out)
            _record(summary, 'erode', Status.OK)
        if config.dilate:
            out = dilate(out)
            _record(summary, 'dilate', Status.OK)

    if config.label:
        label_map = out
        lres = label_all(label_map, LABEL_CONFIG.queue_capacity)
        summary.label_max = lres.label_max
        if not _record(summary, 'label', lres.status, lres.reason):
            logger.info('[INFO] highest completed label: %d', lres.label_max)
            if config.save_debug:
                save_label_map(config.debug_dir / 'labels_partial.tiff', label_map)
            return summary
        summary.props = get_region_props(label_map, lres.label_max)
        logger.info('[INFO] regions:\n%s', format_props_table(summary.props, lres.label_max))

        if config.extract:
            sel = extract_region(img, label_map, summary.props, lres.label_max, REGION_CONFIG.min_area_divisor)
            _record(summary, 'extract', sel.status, sel.reason)
            if sel.ok:
                summary.selected_label = sel.label
                out = sel.grid
            else:
                # 후보가 없으면 label map 이 아닌 이진화 전 이미지를 그대로 출력
                out = img

        if config.n_clusters:
            n_clusters = int(KMEANS_CONFIG.n_clusters)
            values = [float(getattr(p, KMEANS_CONFIG.feature)) for p in summary.props[1:lres.label_max + 1]]
            if len(values) < n_clusters:
                logger.warning('[WARN] kmeans skipped: %d regions < %d clusters', len(values), n_clusters)
                _record(summary, 'kmeans', Status.NO_OP)
            else:
                try:
                    summary.kmeans = cluster_by_kmeans(features_from_values(values), n_clusters)
                    logger.info('[INFO] kmeans centroids (%s): %s', KMEANS_CONFIG.feature, summary.kmeans.centroids)
                    _record(summary, 'kmeans', Status.OK)
                except ClusteringError as e:
                    _record(summary, 'kmeans', Status.DEGENERATE, str(e))

        if config.save_debug:
            save_label_map(config.debug_dir / 'labels.tiff', label_map)
            save_label_overlay(label_map, summary.props, lres.label_max,
                               config.debug_dir / 'labels_overlay.png', summary.selected_label)

    # 4. 템플릿 매칭 -----------------------------------------------------
    if config.template is not None:
        try:
            tpl = read_image(config.template)
        except (OSError, PgmFormatError) as e:
            logger.error('[FAIL] error in reading template: %s', e)
            summary.failed = True
            return summary
        method = MATCH_CONFIG.match
        finder = find_nearest_region if method == 'sad' else find_similar_region
        mres = finder(out, tpl)
        summary.match = mres
        if not _record(summary, f'match_{method}', mres.status, mres.reason):
            return summary
        logger.info('[INFO] %s: %s at (%d, %d)', 'distance' if method == 'sad' else 'similarity',
                    mres.value, mres.point.y, mres.point.x)
        if config.template_out is not None:
            if not _write_output(config.template_out, cutout_template(out, mres.point, tpl.height, tpl.width), summary):
                return summary
        if config.save_debug:
            save_match_overlay(out, tpl, mres.point, config.debug_dir / 'match_overlay.png')
        out = mark_template_region(out, tpl, mres.point)

    if not _write_output(config.dst, out, summary):
        return summary
    if config.save_debug:
        save_json(config.debug_dir / 'report.json', build_run_report(summary))
    logger.info('[LEAVE] main.run: %s', str(config.dst))
    return summary


def main(argv=None) -> int:
    summary = run(argv)
    return 1 if summary.failed else 0


if __name__ == '__main__':
    raise SystemExit(main())
